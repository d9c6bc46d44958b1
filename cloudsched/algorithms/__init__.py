"""Population strategies for the task scheduling optimizer.

Contains:
- Pollination (segment recombination with local/global partner)
- Genetic (all-pairs crossover + swap mutation + truncation)
"""

from cloudsched.algorithms.base import OptimizerState, VariationStrategy
from cloudsched.algorithms.genetic import GeneticStrategy
from cloudsched.algorithms.pollination import PollinationStrategy

__all__ = ["GeneticStrategy", "OptimizerState", "PollinationStrategy", "VariationStrategy"]
