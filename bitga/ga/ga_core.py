# bitga/ga/ga_core.py
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, fields
from typing import Optional, Protocol

import numpy as np
from loguru import logger
from tqdm import tqdm

from .chromosomes import Hypothesis
from .errors import ConfigurationError, DegenerateSelectionError, OracleFailure
from .operators import CrossoverFunction, RouletteSelector, is_degenerate, mutate_population


class FitnessOracle(Protocol):
    def score(self, hypothesis: Hypothesis) -> float: ...


class StatsSink(Protocol):
    def record(self, generation: int, worst: float, average: int, best: float) -> None: ...


def _is_int(value):
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


@dataclass(frozen=True)
class RunConfig:
    population_size: int = 20
    hypothesis_length: int = 42
    generations: int = 1000
    crossover_rate: float = 0.8
    mutation_rate: float = 0.2
    elitist: bool = False
    seed: Optional[int] = None
    selection: str = "cumulative"
    max_selection_rounds: int = 100
    on_degenerate: str = "uniform"
    fresh_mask: bool = False
    workers: int = 1

    def __post_init__(self):
        if not _is_int(self.population_size) or self.population_size < 1:
            raise ConfigurationError(f"population_size must be a positive integer, got {self.population_size!r}")
        if not _is_int(self.hypothesis_length) or self.hypothesis_length < 1:
            raise ConfigurationError(f"hypothesis_length must be a positive integer, got {self.hypothesis_length!r}")
        if not _is_int(self.generations) or self.generations < 0:
            raise ConfigurationError(f"generations must be a non-negative integer, got {self.generations!r}")
        for name in ("crossover_rate", "mutation_rate"):
            rate = getattr(self, name)
            if isinstance(rate, bool) or not isinstance(rate, (int, float, np.floating)) or not 0.0 <= rate <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {rate!r}")
        if self.selection not in RouletteSelector.METHODS:
            raise ConfigurationError(f"selection must be one of {RouletteSelector.METHODS}, got {self.selection!r}")
        if self.on_degenerate not in RouletteSelector.DEGENERATE_POLICIES:
            raise ConfigurationError(f"on_degenerate must be one of {RouletteSelector.DEGENERATE_POLICIES}, "
                                     f"got {self.on_degenerate!r}")
        if not _is_int(self.max_selection_rounds) or self.max_selection_rounds < 1:
            raise ConfigurationError(f"max_selection_rounds must be >= 1, got {self.max_selection_rounds!r}")
        if not _is_int(self.workers) or self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers!r}")
        if self.seed is not None and (not _is_int(self.seed) or self.seed < 0):
            raise ConfigurationError(f"seed must be a non-negative integer, got {self.seed!r}")

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class GenerationStats:
    generation: int
    worst: float
    average: int
    best: float
    best_index: int
    mean: float


class GA:
    """
    Bitstring GA engine.
    fitness_fn is either an object with score(hypothesis) or a plain callable
    taking a Hypothesis; it returns a non-negative number (higher better).

    Each generation: evaluate every individual, report stats to the sinks,
    then build a new population from crossover children, the elite (if
    enabled), and proportionate selection, mutate it, and swap it in.

    With config.workers > 1 the oracle is called from several threads at
    once. Seeded runs are only reproducible then if the oracle is pure;
    oracles drawing from a shared generator (RandomFitness,
    TargetFitness(noise=True)) see the draws in thread order.
    """
    def __init__(self, fitness_fn, config=None, sinks=(), rng=None):
        self.config = config if config is not None else RunConfig()
        self._score = getattr(fitness_fn, "score", fitness_fn)
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.selector = RouletteSelector(method=self.config.selection,
                                         max_rounds=self.config.max_selection_rounds,
                                         on_degenerate=self.config.on_degenerate,
                                         rng=self.rng)
        self.crossover = CrossoverFunction.random_mask(self.config.hypothesis_length, self.rng)
        self.sinks = list(sinks)
        self.generation = 0
        self.fitness = None
        self.best = None
        self._cancelled = threading.Event()
        self._population = [Hypothesis.random(self.config.hypothesis_length, self.rng)
                            for _ in range(self.config.population_size)]

    @property
    def population(self):
        return tuple(self._population)

    def cancel(self):
        """Stop the run before the next generation starts."""
        self._cancelled.set()

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    def evaluate(self):
        """Score the whole population; returns the scores in index order."""
        population = self._population
        if self.config.workers > 1 and len(population) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
                futures = [pool.submit(self._score, h) for h in population]
                scores = [self._result(i, f.result) for i, f in enumerate(futures)]
        else:
            scores = [self._result(i, lambda h=h: self._score(h)) for i, h in enumerate(population)]
        return scores

    def _result(self, index, compute):
        try:
            return compute()
        except Exception as exc:
            raise OracleFailure(index, self._population[index], self.generation) from exc

    def step(self):
        """Run one generation and return its statistics."""
        gen = self.generation
        scores = self.evaluate()

        total = 0
        best_idx, best, worst = 0, None, None
        for i, score in enumerate(scores):
            total += score
            if best is None or score > best:
                best, best_idx = score, i
            if worst is None or score < worst:
                worst = score
        n = len(scores)
        mean = total / n
        # non-finite scores are left to the degenerate-fitness policy in _next_generation
        average = int(mean) if math.isfinite(mean) else mean
        stats = GenerationStats(generation=gen, worst=worst, average=average,
                                best=best, best_index=best_idx, mean=mean)
        self.fitness = np.asarray(scores, dtype=np.float64)
        best_h = self._population[best_idx]
        if best == best and (self.best is None or best > self.best[0]):
            self.best = (best, best_h.copy())

        logger.info("Gen {}/{} - best fitness: {} - mean: {:.4f}", gen + 1, self.config.generations, best, stats.mean)
        self._report(stats, best_h)

        self._population = self._next_generation(self.fitness, float(total), best_idx)
        self.fitness = None
        self.generation += 1
        return stats

    def _report(self, stats, best_h):
        for sink in self.sinks:
            try:
                sink.record(stats.generation, stats.worst, stats.average, stats.best)
                record_individual = getattr(sink, "record_individual", None)
                if record_individual is not None:
                    record_individual(stats.generation, best_h)
            except Exception:
                logger.exception("Stats sink {} failed in generation {}", type(sink).__name__, stats.generation)

    def _next_generation(self, fitness, total, best_idx):
        cfg = self.config
        n = cfg.population_size
        old = self._population

        if is_degenerate(fitness, total):
            if cfg.on_degenerate == "raise":
                raise DegenerateSelectionError(total)
            logger.warning("Gen {}: degenerate fitness (sum={}), selecting uniformly", self.generation + 1, total)

        new_pop = []
        n_crossover = int(math.floor(cfg.crossover_rate * n))
        for _ in range(n_crossover // 2):
            a = self.selector.select(fitness, total)
            b = self.selector.select(fitness, total)
            op = CrossoverFunction.random_mask(cfg.hypothesis_length, self.rng) if cfg.fresh_mask else self.crossover
            child1, child2 = op.recombine(old[a], old[b])
            logger.debug("Crossover {} x {} with {} -> {}, {}", old[a], old[b], op, child1, child2)
            new_pop.extend((child1, child2))

        protected = ()
        if cfg.elitist:
            # keep exactly n: the elite takes the last slot if crossover filled them all
            del new_pop[n - 1:]
            protected = (len(new_pop),)
            new_pop.append(old[best_idx])
            logger.debug("Elite {} kept with fitness {}", old[best_idx], fitness[best_idx])

        while len(new_pop) < n:
            new_pop.append(old[self.selector.select(fitness, total)])

        mutate_population(new_pop, int(math.floor(cfg.mutation_rate * n)), self.rng, protected)
        return new_pop

    def run(self, verbose=False):
        """Run the remaining generations. Returns (best, history)."""
        history = []
        remaining = range(self.generation, self.config.generations)
        logger.info("Starting GA run: {}", self.config)
        if verbose:
            remaining = tqdm(remaining, desc="GA", unit="gen")
        for _ in remaining:
            if self._cancelled.is_set():
                logger.info("Run cancelled before generation {}", self.generation + 1)
                break
            history.append(self.step())
        if self.best is not None:
            logger.info("GA finished after {} generations, best fitness {}: {}",
                        self.generation, self.best[0], self.best[1])
        return self.best, history
