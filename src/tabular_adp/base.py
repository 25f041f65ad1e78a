""" Environment models and the time-dependent Q-learning engine
"""
from __future__ import annotations

import enum
import logging
import numbers
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Optional

import torch
from torch import Tensor

from tabular_adp.utils.extrema import max_and_argmax
from tabular_adp.utils._repr import create_table


logger = logging.getLogger(__name__)


class EnvironmentModel(ABC):
    r"""Sampling access to the (unknown) controlled transition law of a finite MDP

        States are indexed by $0, \dots, n-1$ and actions by $0, \dots, m-1$.
        Implementations own the meaning of these indices and provide

        * the number $m$ of actions,
        * for every state $x$ the set $A(x)\subseteq\{0,\dots, m-1\}$ of admissible actions,
        * a sampler of the next state $y\sim P(\cdot\,|\, x, a)$.

        None of these may depend on time.
    """

    @abstractmethod
    def number_of_actions(self) -> int:
        """ Return the number of actions (independent of time and state)"""

    @abstractmethod
    def admissible_actions(self, state_index: int) -> Sequence[int]:
        """ Return the indices of the actions allowed in the state with index ``state_index``

            Must be deterministic in ``state_index``.
        """

    @abstractmethod
    def sample_next_state(self, state_index: int, action_index: int) -> int:
        """ Sample the index of the state following ``state_index`` under the action ``action_index``"""


class TrainingState(enum.Enum):
    """ Lifecycle of a :class:`TimeDependentQLearning`"""
    UNTRAINED = "untrained"
    TRAINED = "trained"


class TimeDependentQLearning:
    r"""Solve finite-horizon control problems by time-dependent tabular Q-learning

        Saves terminal rewards $g(x)$, running rewards $f(x, a)$, a discount factor $\gamma$ and an
        :class:`EnvironmentModel` and learns the action-value function $Q(t, x, a)$,
        $t=0,\dots, T-1$, of the problem of maximizing
        $$\mathbb{E}\left[\sum_{t=0}^{T-2}\gamma^t f(X_t, A_t) + \gamma^{T-1} g(X_{T-1})\right]$$
        from sampled transitions only.
        Episodes have the fixed length $T$ (:attr:`number_of_times`), start in a uniformly drawn state and
        choose actions epsilon-greedily. After each transition $(x, a)\to y$ at time $t$, updates
        $$Q(t, x, a) \leftarrow Q(t, x, a) + \lambda\left(f(x, a) + \gamma\max_b Q(t+1, y, b) - Q(t, x, a)\right)$$
        where $\lambda$ is the learning rate.
        At final time, $Q(T-1, x, a) = g(x)$ for all actions $a$.
        Actions not admissible in a state have $Q = -\infty$ at all non-final times and are never updated.

        Training runs at most once, either explicitly (see :meth:`train`) or on first access of the results
        (see :meth:`value_functions`, :meth:`optimal_actions_indices` and :meth:`q_values`).
        All results are handed out as copies.
    """

    def __init__(self,
                 rewards_at_final_time: Sequence[float] | Tensor,
                 discount_factor: float,
                 running_rewards: Sequence[Sequence[float]] | Tensor,
                 number_of_times: int,
                 number_of_episodes: int,
                 learning_rate: float,
                 exploration_probability: float,
                 environment: EnvironmentModel,
                 generator: Optional[torch.Generator] = None) -> None:
        r"""Construct a :class:`TimeDependentQLearning`

            Parameters
            ----------
            rewards_at_final_time
                The terminal rewards $g(x)$, one for each state (determines the number of states)
            discount_factor
                The discount factor $\gamma\in[0, 1]$
            running_rewards
                The running rewards $f(x, a)$ as a matrix of shape (states, actions)
            number_of_times
                The number $T\geq 2$ of times of every episode
            number_of_episodes
                The number of episodes to train on
            learning_rate
                The learning rate $\lambda > 0$
            exploration_probability
                The probability in $[0, 1]$ of exploring a random admissible action instead of exploiting the greedy one
            environment
                The environment model to sample transitions from
            generator
                The source of randomness for start states and exploration (optional; default: freshly seeded generator)

            Raises
            ------
            ValueError
                Raised if the rewards have inconsistent shapes or any scalar lies outside its range.
            TypeError
                Raised if ``environment`` is not an :class:`EnvironmentModel` or if ``number_of_times`` or
                ``number_of_episodes`` is not an integer.
        """
        rewards_at_final_time = torch.as_tensor(rewards_at_final_time, dtype=torch.float64).clone()
        running_rewards = torch.as_tensor(running_rewards, dtype=torch.float64).clone()

        if rewards_at_final_time.dim() != 1 or len(rewards_at_final_time) == 0:
            raise ValueError("Provide one final reward per state.")
        if running_rewards.dim() != 2 or running_rewards.size(0) != rewards_at_final_time.size(0):
            raise ValueError("Provide running rewards as a (states, actions) matrix.")
        if not 0. <= discount_factor <= 1.:
            raise ValueError("Discount factor must lie in [0, 1].")
        if not isinstance(number_of_times, numbers.Integral) or not isinstance(number_of_episodes, numbers.Integral):
            raise TypeError("Numbers of times and episodes must be integers.")
        if number_of_times < 2:
            raise ValueError("Need at least two times.")
        if number_of_episodes < 1:
            raise ValueError("Need at least one episode.")
        if not learning_rate > 0.:
            raise ValueError("Learning rate must be positive.")
        if not 0. <= exploration_probability <= 1.:
            raise ValueError("Exploration probability must lie in [0, 1].")
        if not isinstance(environment, EnvironmentModel):
            raise TypeError("Must be `EnvironmentModel`.")

        if generator is None:
            generator = torch.Generator()
            generator.seed()

        self._rewards_at_final_time = rewards_at_final_time
        self._running_rewards = running_rewards
        self._discount_factor = float(discount_factor)
        self._number_of_times = int(number_of_times)
        self._number_of_episodes = int(number_of_episodes)
        self._learning_rate = float(learning_rate)
        self._exploration_probability = float(exploration_probability)
        self._environment = environment
        self._generator = generator

        self._state = TrainingState.UNTRAINED
        self._lock = threading.Lock()

        self._q_values: Optional[Tensor] = None
        self._value_functions: Optional[Tensor] = None
        self._optimal_actions_indices: Optional[Tensor] = None

    @property
    def number_of_states(self) -> int:
        """ The number of states (the number of final rewards)"""
        return len(self._rewards_at_final_time)

    @property
    def number_of_actions(self) -> int:
        """ The number of actions of the environment"""
        return self._environment.number_of_actions()

    @property
    def number_of_times(self) -> int:
        return self._number_of_times

    @property
    def number_of_episodes(self) -> int:
        return self._number_of_episodes

    @property
    def discount_factor(self) -> float:
        return self._discount_factor

    @property
    def learning_rate(self) -> float:
        return self._learning_rate

    @property
    def exploration_probability(self) -> float:
        return self._exploration_probability

    @property
    def environment(self) -> EnvironmentModel:
        """ The environment model transitions are sampled from"""
        return self._environment

    @property
    def rewards_at_final_time(self) -> Tensor:
        """ A copy of the final rewards $g(x)$"""
        return self._rewards_at_final_time.clone()

    @property
    def running_rewards(self) -> Tensor:
        """ A copy of the running rewards $f(x, a)$"""
        return self._running_rewards.clone()

    @property
    def state(self) -> TrainingState:
        """ The training state of ``self``"""
        return self._state

    @property
    def trained(self) -> bool:
        return self._state is TrainingState.TRAINED

    def train(self) -> None:
        r"""Run the training, if not done already

            Moves ``self`` from :attr:`TrainingState.UNTRAINED` to :attr:`TrainingState.TRAINED`
            by initializing the Q-table, running :attr:`number_of_episodes` episodes and deriving
            the value functions
            $$V(t, x) = \max_a Q(t, x, a)$$
            and the optimal actions $\pi(t, x)$ (the smallest maximizing action indices).
            Further calls have no effect, also when issued concurrently.

            Raises
            ------
            ValueError
                Raised if the environment does not fit the rewards or if a state has no admissible actions.
        """
        with self._lock:
            if self._state is TrainingState.TRAINED:
                return

            logger.info("Training on %d episodes of %d times (%d states, %d actions)",
                        self._number_of_episodes, self._number_of_times,
                        self.number_of_states, self.number_of_actions)

            q_values, admissible_actions = self._initial_q_values()
            self._run_episodes(q_values, admissible_actions)
            value_functions, optimal_actions_indices = max_and_argmax(q_values, dim=-1)

            self._q_values = q_values
            self._value_functions = value_functions
            self._optimal_actions_indices = optimal_actions_indices
            self._state = TrainingState.TRAINED

            logger.info("Training done")

    def _initial_q_values(self) -> tuple[Tensor, list[list[int]]]:
        number_of_actions = self.number_of_actions
        if number_of_actions != self._running_rewards.size(1):
            raise ValueError(
                f"Environment has {number_of_actions} actions, "
                f"running rewards have {self._running_rewards.size(1)}."
            )

        q_values = torch.empty(self._number_of_times, self.number_of_states, number_of_actions,
                               dtype=torch.float64)
        admissible_actions = []
        for state_index in range(self.number_of_states):
            # Deduplicate, keeping the order the environment lists the actions in
            actions = list(dict.fromkeys(int(action) for action in self._environment.admissible_actions(state_index)))
            if not actions:
                raise ValueError(f"No admissible actions in state {state_index}.")
            if not all(0 <= action < number_of_actions for action in actions):
                raise ValueError(f"Admissible actions of state {state_index} out of range.")

            row = torch.full((number_of_actions,), float("-inf"), dtype=torch.float64)
            row[actions] = 0.
            q_values[:-1, state_index] = row
            admissible_actions.append(actions)

        # Final rewards do not depend on the action
        q_values[-1] = self._rewards_at_final_time.unsqueeze(1).expand(-1, number_of_actions)

        return q_values, admissible_actions

    def _run_episodes(self, q_values: Tensor, admissible_actions: list[list[int]]) -> None:
        generator = self._generator
        running_rewards = self._running_rewards.tolist()
        number_of_states = self.number_of_states
        report_every = max(self._number_of_episodes // 10, 1)

        for episode in range(self._number_of_episodes):
            # No absorbing states, so any state may start an episode
            state_index = torch.randint(number_of_states, (1,), generator=generator).item()
            # Exploration coins and uniforms picking the explored action, drawn once per episode
            coins, picks = torch.rand(2, self._number_of_times - 1, dtype=torch.float64, generator=generator).tolist()

            for time in range(self._number_of_times - 1):
                if coins[time] < self._exploration_probability:
                    actions = admissible_actions[state_index]
                    action_index = actions[min(int(picks[time] * len(actions)), len(actions) - 1)]
                else:
                    _, action_index = max_and_argmax(q_values[time, state_index])

                next_state_index = int(self._environment.sample_next_state(state_index, action_index))
                if not 0 <= next_state_index < number_of_states:
                    raise ValueError(f"Environment produced state {next_state_index} out of range.")

                continuation, _ = max_and_argmax(q_values[time + 1, next_state_index])
                current = q_values[time, state_index, action_index].item()
                q_values[time, state_index, action_index] = current + self._learning_rate * (
                    running_rewards[state_index][action_index]
                    + self._discount_factor * continuation
                    - current
                )

                state_index = next_state_index

            if (episode + 1) % report_every == 0:
                logger.debug("Episode %d/%d done", episode + 1, self._number_of_episodes)

    def q_values(self) -> Tensor:
        """ Return a copy of the learned Q-table, of shape (times, states, actions)

            Trains ``self`` first, if necessary (see :meth:`train`).
        """
        self.train()
        return self._q_values.clone()

    def value_functions(self) -> Tensor:
        """ Return a copy of the value functions, of shape (times, states)

            Trains ``self`` first, if necessary (see :meth:`train`).
        """
        self.train()
        return self._value_functions.clone()

    def optimal_actions_indices(self) -> Tensor:
        """ Return a copy of the indices of the optimal actions, of shape (times, states)

            Trains ``self`` first, if necessary (see :meth:`train`).
        """
        self.train()
        return self._optimal_actions_indices.clone()

    def as_table(self, width: Optional[int] = None, height: Optional[int] = None) -> str:
        """ Return a string representation of the value functions and optimal actions as a table

            Trains ``self`` first, if necessary (see :meth:`train`).

            Parameters
            ----------
            width
                The width of the table (optional).
            height
                The height of the table (optional).

            Returns
            -------
            str
                The string representation of ``self`` as a table.
        """
        self.train()
        return "\n".join(create_table(
            self.__class__.__name__,
            ["value_func", "optimal_action"],
            [self._value_functions, self._optimal_actions_indices],
            width=width,
            height=height
        ))

    def __repr__(self) -> str:
        if self.trained:
            return self.as_table()
        return (f"{self.__class__.__name__}(times={self._number_of_times}, states={self.number_of_states}, "
                f"episodes={self._number_of_episodes}, {self._state.value})")

