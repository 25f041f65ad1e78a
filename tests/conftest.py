"""Shared fixtures for tabular_adp tests."""

from __future__ import annotations

import collections

import pytest
import torch

from tabular_adp.base import EnvironmentModel, TimeDependentQLearning
from tabular_adp.model.markov import FiniteMarkovEnvironment


class CountingEnvironment(EnvironmentModel):
    """Wrap an environment model and count the calls it receives."""

    def __init__(self, environment: EnvironmentModel) -> None:
        self.environment = environment
        self.admissible_calls = 0
        self.sample_calls = 0
        self.chosen_actions = collections.Counter()

    def number_of_actions(self) -> int:
        return self.environment.number_of_actions()

    def admissible_actions(self, state_index: int) -> list[int]:
        self.admissible_calls += 1
        return list(self.environment.admissible_actions(state_index))

    def sample_next_state(self, state_index: int, action_index: int) -> int:
        self.sample_calls += 1
        self.chosen_actions[state_index, action_index] += 1
        return self.environment.sample_next_state(state_index, action_index)


@pytest.fixture
def generator() -> torch.Generator:
    return torch.Generator().manual_seed(1234)


@pytest.fixture
def two_state_chain(generator) -> FiniteMarkovEnvironment:
    """Two states, two actions, every transition leads to state 1."""
    return FiniteMarkovEnvironment.from_transition_function([[1, 1], [1, 1]], generator=generator)


@pytest.fixture
def masked_chain(generator) -> FiniteMarkovEnvironment:
    """Three states and three actions with a random walk law and some inadmissible actions."""
    transition_probabilities = torch.tensor([
        [[0.5, 0.5, 0.0], [0.0, 1.0, 0.0], [0.2, 0.3, 0.5]],
        [[1.0, 0.0, 0.0], [0.1, 0.8, 0.1], [0.0, 0.0, 1.0]],
        [[0.0, 0.5, 0.5], [0.3, 0.3, 0.4], [0.0, 0.0, 1.0]],
    ])
    admissible = torch.tensor([
        [True, True, False],
        [True, True, True],
        [False, True, True],
    ])
    return FiniteMarkovEnvironment(transition_probabilities, admissible=admissible, generator=generator)


@pytest.fixture
def masked_q_learning(masked_chain, generator) -> TimeDependentQLearning:
    return TimeDependentQLearning(
        rewards_at_final_time=[0.0, 1.0, 3.0],
        discount_factor=0.9,
        running_rewards=[[0.1, -0.2, 0.0], [0.0, 0.5, -1.0], [0.0, 0.2, 0.3]],
        number_of_times=5,
        number_of_episodes=300,
        learning_rate=0.2,
        exploration_probability=0.3,
        environment=masked_chain,
        generator=generator,
    )


@pytest.fixture
def counting_chain(masked_chain) -> CountingEnvironment:
    return CountingEnvironment(masked_chain)
