r"""Time-dependent tabular Q-learning for finite-horizon discrete-time stochastic control problems

    A control problem within the scope of :mod:`tabular_adp` of $T$ *times* consists of finitely many states
    $x = 0, \dots, n-1$ and actions $a = 0, \dots, m-1$ together with

    * for each state $x$ a set $A(x)$ of *admissible actions*,
    * a (time-independent) *transition law* $P(\cdot\,|\,x, a)$ which is unknown but can be sampled,
    * *running rewards* $f(x, a)$, *final rewards* $g(x)$ and a *discount factor* $\gamma\in[0, 1]$.

    A choice of actions is optimal, if, in prospective expectation, the total reward
    $$\sum_{t=0}^{T-2}\gamma^t f(X_t, A_t) + \gamma^{T-1} g(X_{T-1})$$
    is maximal.

    :mod:`tabular_adp` represents transition laws by :class:`tabular_adp.base.EnvironmentModel`'s and approximates
    the optimal *value functions* $V(t, x)$ and the optimal actions in *feedback form* $\pi(t, x)$ by
    :class:`tabular_adp.base.TimeDependentQLearning`, learning the action-value function $Q(t, x, a)$
    on a table from simulated episodes.
    :mod:`tabular_adp.model` provides concrete environment models, among them a discretized Merton-type
    optimal investment problem (see :mod:`tabular_adp.model.finance`).
"""

__version__ = "0.1.0"

from .base import EnvironmentModel, TimeDependentQLearning, TrainingState
