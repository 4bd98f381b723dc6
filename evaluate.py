import csv
import itertools
import sys
import time

from loguru import logger

from bitga.eval.fitness import TargetFitness
from bitga.ga.ga_core import GA, RunConfig

# crossover / mutation grid
CROSSOVER_RATES = [0.6, 0.7, 0.8, 0.9]
MUTATION_RATES = [0.05, 0.1, 0.2, 0.3]

FIELDS = ["crossover_rate", "mutation_rate", "final_best", "final_average", "best_ever", "time_sec"]


def run_point(crossover_rate, mutation_rate, generations=200, seed=0):
    config = RunConfig(generations=generations, crossover_rate=crossover_rate,
                       mutation_rate=mutation_rate, seed=seed)
    ga = GA(TargetFitness(), config)
    best, history = ga.run()
    if not history:
        return {"final_best": None, "final_average": None, "best_ever": None}
    last = history[-1]
    return {"final_best": last.best, "final_average": last.average, "best_ever": best[0]}


def main(csv_path="results_sweep.csv", generations=200, seed=0):
    logger.remove()
    logger.add(sys.stderr, level="WARNING")

    results = []
    print(f"Running rate sweep: {len(CROSSOVER_RATES) * len(MUTATION_RATES)} points, {generations} generations each\n")
    for cr, mr in itertools.product(CROSSOVER_RATES, MUTATION_RATES):
        print(f"▶ crossover={cr} mutation={mr}")
        start = time.time()
        row = {"crossover_rate": cr, "mutation_rate": mr}
        try:
            row.update(run_point(cr, mr, generations=generations, seed=seed))
            row["time_sec"] = round(time.time() - start, 2)
            print(f"✅ Done: best={row['final_best']} avg={row['final_average']} best_ever={row['best_ever']}")
        except Exception as e:
            logger.opt(exception=e).error("Sweep point crossover={} mutation={} failed", cr, mr)
            row.update({"final_best": None, "final_average": None, "best_ever": None, "time_sec": None})
        results.append(row)

    with open(csv_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDS)
        writer.writeheader()
        writer.writerows(results)

    print(f"\n✅ All results saved to {csv_path}")
    return results


if __name__ == "__main__":
    main()
