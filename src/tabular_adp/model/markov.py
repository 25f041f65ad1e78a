"""
Provides Environment Models of Finite Markov Decision Processes with Given Transition Probabilities
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

import torch

from tabular_adp.base import EnvironmentModel


class FiniteMarkovEnvironment(EnvironmentModel):
    r"""
    Environment model sampling from explicitly given transition probabilities.

    Saves transition probabilities
    $$P(x, a, y) = \mathbb{P}(X_{t+1} = y \,|\, X_t = x, A_t = a)$$
    as a tensor of shape (states, actions, states) and, optionally, a boolean mask of shape (states, actions)
    marking the admissible actions (by default, all actions are admissible).
    """

    def __init__(self,
                 transition_probabilities: Sequence | torch.Tensor,
                 admissible: Optional[Sequence | torch.Tensor] = None,
                 generator: Optional[torch.Generator] = None) -> None:
        r"""
        Create the environment model of a finite Markov decision process.

        Parameters
        ----------
        transition_probabilities
            The transition probabilities $P(x, a, y)$, of shape (states, actions, states)
        admissible
            The admissibility mask, of shape (states, actions); by default, all actions are admissible
        generator : torch.Generator, optional
            The source of randomness of the transitions, by default a freshly seeded generator

        Raises
        ------
        ValueError
            Raised if the transition probabilities or the mask are malformed.
        """
        transition_probabilities = torch.as_tensor(transition_probabilities, dtype=torch.float64).clone()

        if transition_probabilities.dim() != 3 or transition_probabilities.size(0) != transition_probabilities.size(2):
            raise ValueError("Transition probabilities must have shape (states, actions, states).")
        if (transition_probabilities < 0.).any():
            raise ValueError("Transition probabilities must be non-negative.")
        if not torch.allclose(transition_probabilities.sum(dim=2),
                              torch.ones(transition_probabilities.shape[:2], dtype=torch.float64)):
            raise ValueError("Transition probabilities must sum to one over the next states.")

        if admissible is None:
            admissible = torch.ones(transition_probabilities.shape[:2], dtype=torch.bool)
        else:
            admissible = torch.as_tensor(admissible, dtype=torch.bool).clone()
            if admissible.shape != transition_probabilities.shape[:2]:
                raise ValueError("Admissibility mask must have shape (states, actions).")

        if generator is None:
            generator = torch.Generator()
            generator.seed()

        self._transition_probabilities = transition_probabilities
        self._admissible = admissible
        self.generator = generator

    @classmethod
    def from_transition_function(cls,
                                 transition_function: Sequence[Sequence[int]] | torch.Tensor,
                                 admissible: Optional[Sequence | torch.Tensor] = None,
                                 generator: Optional[torch.Generator] = None) -> FiniteMarkovEnvironment:
        r"""
        Create a deterministic environment model from its transition function.

        Parameters
        ----------
        transition_function
            The next state $y = \phi(x, a)$ for every state $x$ and action $a$, of shape (states, actions)
        admissible
            The admissibility mask (see :meth:`__init__`)
        generator
            The source of randomness (irrelevant for the transitions, kept for interface uniformity)

        Returns
        -------
        FiniteMarkovEnvironment
            The environment model with $P(x, a, \cdot) = \delta_{\phi(x, a)}$
        """
        transition_function = torch.as_tensor(transition_function, dtype=torch.long)
        if transition_function.dim() != 2:
            raise ValueError("Transition function must have shape (states, actions).")

        number_of_states = transition_function.size(0)
        if ((transition_function < 0) | (transition_function >= number_of_states)).any():
            raise ValueError("Transition function must map to state indices.")

        transition_probabilities = torch.nn.functional.one_hot(
            transition_function,
            num_classes=number_of_states
        ).to(torch.float64)

        return cls(transition_probabilities, admissible=admissible, generator=generator)

    def number_of_states(self) -> int:
        return self._transition_probabilities.size(0)

    def number_of_actions(self) -> int:
        return self._transition_probabilities.size(1)

    @property
    def transition_probabilities(self) -> torch.Tensor:
        """ A copy of the transition probabilities"""
        return self._transition_probabilities.clone()

    @property
    def admissible(self) -> torch.Tensor:
        """ A copy of the admissibility mask"""
        return self._admissible.clone()

    def admissible_actions(self, state_index: int) -> list[int]:
        return self._admissible[state_index].nonzero().flatten().tolist()

    def sample_next_state(self, state_index: int, action_index: int) -> int:
        probabilities = self._transition_probabilities[state_index, action_index]
        return torch.multinomial(probabilities, 1, generator=self.generator).item()
