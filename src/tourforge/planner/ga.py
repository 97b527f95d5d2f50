"""Genetic algorithm over candidates.

The population is kept sorted best-first.  Every generation a tournament picks
the crossover pool, the non-elite part of the population is replaced by
children of random pairs from that pool (optionally mutated), and the search
stops once the best candidate has not improved for ``stagnation_count``
generations or ``max_generations`` is reached.
"""

from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence, Set

from ..config import DEFAULT_GA_PARAMS, DEFAULT_TOURNAMENT_PARAMS, GAParams, TournamentParams
from ..core.candidate import Candidate
from ..core.randomness import RandomGenerator, resolve
from .operators import CrossOverOperator, Operator
from .strategy import NewBestHook, Strategy

logger = logging.getLogger(__name__)


class Selector(ABC):
    """Picks the index of a population member, or -1 when nothing was picked."""

    @abstractmethod
    def select(self, population: Sequence[Candidate], excluded: Set[int]) -> int:
        ...


class TournamentSelector(Selector):
    """Tournament selection.

    Samples ``size_percentage`` of the population (excluding ``excluded``),
    ranks the sample and walks it best-first, picking each member with
    ``probability``.  Returns -1 when the walk ends without a pick.
    """

    def __init__(self, params: TournamentParams = DEFAULT_TOURNAMENT_PARAMS, random: Optional[RandomGenerator] = None) -> None:
        self.params = params
        self._random = resolve(random)

    def select(self, population: Sequence[Candidate], excluded: Set[int]) -> int:
        pool = [index for index in range(len(population)) if index not in excluded]
        if not pool:
            raise ValueError("Every population member is excluded")
        size = max(1, int(len(population) * self.params.size_percentage / 100.0))
        sample = self._random.sample(pool, min(size, len(pool)))
        sample.sort(key=functools.cmp_to_key(lambda a, b: population[a].compare(population[b])))
        for index in sample:
            if self._random.random() < self.params.probability:
                return index
        return -1


def _sort(population: List[Candidate]) -> None:
    population.sort(key=functools.cmp_to_key(lambda a, b: a.compare(b)))


class GAStrategy(Strategy):
    """Elitist generational GA with tournament selection."""

    name = "GA"

    def __init__(
        self,
        generator: Strategy,
        crossover: CrossOverOperator,
        mutation: Optional[Operator] = None,
        selector: Optional[Selector] = None,
        params: GAParams = DEFAULT_GA_PARAMS,
        random: Optional[RandomGenerator] = None,
        stopped: Optional[Callable[[], bool]] = None,
        on_new_best: Optional[NewBestHook] = None,
    ) -> None:
        super().__init__(on_new_best)
        if params.crossover < 2:
            raise ValueError(
                f"crossover_percentage of {params.crossover_percentage}% selects {params.crossover} "
                f"parents from {params.population_size}; at least 2 are needed"
            )
        if params.elitism >= params.population_size:
            raise ValueError("elitism must leave room for offspring")
        self._generator = generator
        self._crossover = crossover
        self._mutation = mutation
        self._random = resolve(random)
        self._selector = selector if selector is not None else TournamentSelector(random=self._random)
        self.params = params
        self._stopped = stopped
        self.generations = 0

    def search(self, problem: Any) -> Candidate:
        params = self.params
        population = [self._generator.search(problem) for _ in range(params.population_size)]
        _sort(population)
        best = population[0]
        logger.info(f"[GA] initial population of {len(population)}, best {best.fitness}")
        if not self.report(best):
            return best

        stagnation = 0
        generation = 0
        while stagnation < params.stagnation_count and generation < params.max_generations:
            if self._stopped is not None and self._stopped():
                logger.info(f"[GA] cancelled at generation {generation}")
                break

            parents = self._select_parents(population)
            offspring = []
            for _ in range(params.elitism, params.population_size):
                first, second = self._random.generate2(len(parents))
                child = self._crossover.apply(population[parents[first]], population[parents[second]])
                if self._mutation is not None and self._random.uniform(100.0) < params.mutation_percentage:
                    self._mutation.apply(child)
                offspring.append(child)
            population[params.elitism:] = offspring
            _sort(population)
            generation += 1

            if population[0].better_than(best):
                best = population[0]
                stagnation = 0
                logger.debug(f"[GA] generation {generation}: new best {best.fitness}")
                if not self.report(best):
                    break
            else:
                stagnation += 1

        self.generations = generation
        logger.info(f"[GA] finished after {generation} generations with best {best.fitness}")
        return best

    def _select_parents(self, population: List[Candidate]) -> List[int]:
        selected: List[int] = []
        excluded: Set[int] = set()
        while len(selected) < self.params.crossover:
            index = self._selector.select(population, excluded)
            if index >= 0:
                selected.append(index)
                excluded.add(index)
        return selected
