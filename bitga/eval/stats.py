# bitga/eval/stats.py
"""Statistics sinks for GA runs: memory, semicolon CSV, gnuplot text, per-parameter diffs."""
import csv
import os

from loguru import logger


def default_filename(config, ext):
    """GA_<population>_<generations>_<crossover>_<mutation>.<ext>"""
    return (f"GA_{config.population_size}_{config.generations}_"
            f"{config.crossover_rate}_{config.mutation_rate}.{ext}")


class MemoryStatsSink:
    """Keeps every row in memory; best individuals are stored as display strings."""

    def __init__(self):
        self.rows = []
        self.individuals = []

    def record(self, generation, worst, average, best):
        self.rows.append({"generation": generation, "worst": worst,
                          "average": average, "best": best})

    def record_individual(self, generation, hypothesis):
        self.individuals.append((generation, hypothesis.to_display_string()))

    def column(self, name):
        return [row[name] for row in self.rows]

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class _FileSink:
    def __init__(self, path):
        self.path = str(path)
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self._f = open(self.path, "w", newline="")
        logger.debug("Writing {} to {}", type(self).__name__, self.path)

    def close(self):
        if not self._f.closed:
            self._f.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class CsvStatsSink(_FileSink):
    HEADER = ["Iteration", "WorstFitness", "AvgFitness", "BestFitness"]

    def __init__(self, path):
        super().__init__(path)
        self._writer = csv.writer(self._f, delimiter=";")
        self._writer.writerow(self.HEADER)
        self._f.flush()

    def record(self, generation, worst, average, best):
        self._writer.writerow([generation, worst, average, best])
        self._f.flush()


class PlainStatsSink(_FileSink):
    """Space separated rows for gnuplot."""

    def record(self, generation, worst, average, best):
        self._f.write(f"{generation} {worst} {average} {best}\n")
        self._f.flush()


class ParamDiffSink(_FileSink):
    """
    Writes the per-parameter closeness of the best individual each
    generation: "<generation> <p1> <p2> ...". fitness must provide
    param_scores(hypothesis).
    """

    def __init__(self, path, fitness):
        super().__init__(path)
        self.fitness = fitness

    def record(self, generation, worst, average, best):
        pass

    def record_individual(self, generation, hypothesis):
        values = self.fitness.param_scores(hypothesis)
        self._f.write(" ".join(str(v) for v in [generation, *values]) + "\n")
        self._f.flush()
