"""
Provides the Discretized Optimal Investment Problem
"""
from __future__ import annotations

import math
from collections.abc import Callable
from typing import Optional

import torch

from tabular_adp.base import EnvironmentModel, TimeDependentQLearning


class PowerUtility:
    r"""
    Provides callable instances implementing the power utility function
    $$u(w) = w^p$$
    for an exponent $p$ (as saved by :attr:`exponent`).
    """

    exponent: float

    def __init__(self, exponent: float) -> None:
        self.exponent = exponent

    def __call__(self, wealth: float | torch.Tensor) -> float | torch.Tensor:
        return wealth ** self.exponent

    def __repr__(self) -> str:
        return f"PowerUtility(exponent={self.exponent})"


class OptimalInvestment(EnvironmentModel):
    r"""
    Environment model of an investor splitting wealth between a stock and a bank account.

    Wealth is discretized on $[w_{\min}, w_{\max}]$ with step $\Delta w$, the state with index $x$ encoding
    $$w_x = w_{\min} + x\Delta w.$$
    The fraction of wealth invested into the stock is discretized on $[0, p_{\max}]$ with step $\Delta p$,
    the action with index $a$ encoding $p_a = a\Delta p$.

    Over a time step $\Delta t$, wealth evolves according to one Euler-Maruyama step of the Merton dynamics
    $$w' = w + w\left(p(\mu - r) + r\right)\Delta t + w\sigma p\sqrt{\Delta t} Z, \quad Z\sim N(0, 1)$$
    with constant drift $\mu$ and volatility $\sigma$ of the stock and with the interest rate
    $r = -\log(\gamma)/\Delta t$ implied by the discount factor $\gamma$.
    The new wealth is clamped to $[w_{\min}, w_{\max}]$ and rounded to the nearest grid point.

    In a state of wealth $w > 0$, the admissible actions are those with
    $$p_a \leq \frac{w_{\max} - w}{w}.$$
    States of zero wealth admit only the action of not investing.
    """

    constant_drift: float
    constant_volatility: float
    discount_factor: float
    minimum_wealth: float
    maximum_wealth: float
    wealth_step: float
    time_step: float
    investment_step: float
    maximum_investment: float

    def __init__(self,
                 constant_drift: float,
                 constant_volatility: float,
                 discount_factor: float,
                 minimum_wealth: float,
                 maximum_wealth: float,
                 wealth_step: float,
                 time_step: float,
                 investment_step: float,
                 maximum_investment: float,
                 generator: Optional[torch.Generator] = None) -> None:
        r"""
        Create the environment model of a discretized optimal investment problem.

        Parameters
        ----------
        constant_drift : float
            The drift $\mu$ of the stock
        constant_volatility : float
            The volatility $\sigma\geq 0$ of the stock
        discount_factor : float
            The discount factor $\gamma\in (0, 1]$ per time step, determines the interest rate
        minimum_wealth : float
            The smallest wealth level $w_{\min}\geq 0$
        maximum_wealth : float
            The largest wealth level $w_{\max} > w_{\min}$
        wealth_step : float
            The wealth discretization step $\Delta w > 0$
        time_step : float
            The time step $\Delta t > 0$
        investment_step : float
            The investment fraction discretization step $\Delta p > 0$
        maximum_investment : float
            The largest fraction $p_{\max}\geq 0$ of wealth that may be invested
        generator : torch.Generator, optional
            The source of randomness of the wealth dynamics, by default a freshly seeded generator

        Raises
        ------
        ValueError
            Raised if any of the parameters lies outside its range.
        """
        if not wealth_step > 0. or not time_step > 0. or not investment_step > 0.:
            raise ValueError("Steps must be positive.")
        if not 0. <= minimum_wealth < maximum_wealth:
            raise ValueError("Need 0 <= minimum_wealth < maximum_wealth.")
        if not 0. < discount_factor <= 1.:
            raise ValueError("Discount factor must lie in (0, 1].")
        if constant_volatility < 0.:
            raise ValueError("Volatility must be non-negative.")
        if maximum_investment < 0.:
            raise ValueError("Maximum investment must be non-negative.")

        if generator is None:
            generator = torch.Generator()
            generator.seed()

        self.constant_drift = constant_drift
        self.constant_volatility = constant_volatility
        self.discount_factor = discount_factor
        self.minimum_wealth = minimum_wealth
        self.maximum_wealth = maximum_wealth
        self.wealth_step = wealth_step
        self.time_step = time_step
        self.investment_step = investment_step
        self.maximum_investment = maximum_investment
        self.generator = generator

    @property
    def interest_rate(self) -> float:
        r""" The interest rate $r = -\log(\gamma)/\Delta t$ implied by the discount factor"""
        return -math.log(self.discount_factor) / self.time_step

    def number_of_states(self) -> int:
        return math.floor((self.maximum_wealth - self.minimum_wealth) / self.wealth_step) + 1

    def number_of_actions(self) -> int:
        return math.floor(self.maximum_investment / self.investment_step) + 1

    def wealth(self, state_index: int) -> float:
        """ Return the wealth encoded by the state with index ``state_index``"""
        return self.minimum_wealth + state_index * self.wealth_step

    def wealth_levels(self) -> torch.Tensor:
        """ Return the wealth levels of all states, in order of their indices"""
        indices = torch.arange(self.number_of_states(), dtype=torch.float64)
        return self.minimum_wealth + indices * self.wealth_step

    def investment_fraction(self, action_index: int) -> float:
        """ Return the fraction of wealth invested under the action with index ``action_index``"""
        return action_index * self.investment_step

    def investment_fractions(self) -> torch.Tensor:
        """ Return the invested fractions of all actions, in order of their indices"""
        indices = torch.arange(self.number_of_actions(), dtype=torch.float64)
        return indices * self.investment_step

    def admissible_actions(self, state_index: int) -> list[int]:
        # The last grid point may overshoot the maximum wealth by rounding
        current_wealth = min(self.wealth(state_index), self.maximum_wealth)
        if current_wealth == 0.:
            return [0]

        bound = (self.maximum_wealth - current_wealth) / current_wealth
        return [action_index for action_index in range(self.number_of_actions())
                if self.investment_fraction(action_index) <= bound]

    def sample_next_state(self, state_index: int, action_index: int) -> int:
        fraction = self.investment_fraction(action_index)
        current_wealth = self.wealth(state_index)
        interest_rate = self.interest_rate

        drift = fraction * (self.constant_drift - interest_rate) + interest_rate
        diffusion = self.constant_volatility * fraction
        increment = torch.randn(1, dtype=torch.float64, generator=self.generator).item()

        new_wealth = (current_wealth
                      + current_wealth * drift * self.time_step
                      + current_wealth * diffusion * math.sqrt(self.time_step) * increment)
        new_wealth = max(self.minimum_wealth, min(self.maximum_wealth, new_wealth))

        # Round half up to the nearest grid point
        new_state_index = math.floor((new_wealth - self.minimum_wealth) / self.wealth_step + 0.5)
        return max(0, min(new_state_index, self.number_of_states() - 1))

    def __repr__(self) -> str:
        return (
            f"OptimalInvestment(constant_drift={self.constant_drift}, "
            f"constant_volatility={self.constant_volatility}, discount_factor={self.discount_factor}, "
            f"wealth=[{self.minimum_wealth}, {self.maximum_wealth}] by {self.wealth_step}, "
            f"investment=[0, {self.maximum_investment}] by {self.investment_step}, "
            f"time_step={self.time_step})"
        )


def optimal_investment_q_learning(constant_drift: float,
                                  constant_volatility: float,
                                  discount_factor: float,
                                  utility_function: Callable[[float], float],
                                  minimum_wealth: float,
                                  maximum_wealth: float,
                                  wealth_step: float,
                                  time_step: float,
                                  number_of_times: int,
                                  investment_step: float,
                                  maximum_investment: float,
                                  number_of_episodes: int,
                                  learning_rate: float,
                                  exploration_probability: float,
                                  generator: Optional[torch.Generator] = None) -> TimeDependentQLearning:
    r"""
    Set up Q-learning of the discretized optimal investment problem.

    Rewards the investor with the utility $u(w_x)$ of the final wealth and, as in the plain Merton problem,
    with no running rewards.
    The environment (see :class:`OptimalInvestment`) is available as
    :attr:`TimeDependentQLearning.environment` of the returned object, e.g. to decode state indices into wealth levels.

    Parameters
    ----------
    utility_function : Callable[[float], float]
        The utility $u$ of final wealth (e.g. a :class:`PowerUtility`)
    number_of_times, number_of_episodes, learning_rate, exploration_probability
        See :class:`TimeDependentQLearning`
    generator : torch.Generator, optional
        The source of randomness of both the environment and the training, by default a freshly seeded generator

    The remaining parameters are those of :class:`OptimalInvestment`.

    Returns
    -------
    TimeDependentQLearning
        The (untrained) Q-learning of the problem
    """
    if generator is None:
        generator = torch.Generator()
        generator.seed()

    environment = OptimalInvestment(
        constant_drift=constant_drift,
        constant_volatility=constant_volatility,
        discount_factor=discount_factor,
        minimum_wealth=minimum_wealth,
        maximum_wealth=maximum_wealth,
        wealth_step=wealth_step,
        time_step=time_step,
        investment_step=investment_step,
        maximum_investment=maximum_investment,
        generator=generator
    )

    rewards_at_final_time = torch.tensor(
        [utility_function(float(wealth)) for wealth in environment.wealth_levels()],
        dtype=torch.float64
    )
    # TODO Accept a running reward model once intermediate consumption is modeled
    running_rewards = torch.zeros(environment.number_of_states(), environment.number_of_actions(),
                                  dtype=torch.float64)

    return TimeDependentQLearning(
        rewards_at_final_time,
        discount_factor,
        running_rewards,
        number_of_times,
        number_of_episodes,
        learning_rate,
        exploration_probability,
        environment,
        generator=generator
    )
