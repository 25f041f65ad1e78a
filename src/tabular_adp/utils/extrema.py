""" Maximum and maximizing index utilities
"""
from __future__ import annotations

from collections.abc import Sequence

import torch
from torch import Tensor


def max_and_argmax(values: Sequence[float] | Tensor,
                   dim: int = -1) -> tuple[float, int] | tuple[Tensor, Tensor]:
    r"""Return the maximum of ``values`` together with the first index attaining it

        For a one-dimensional input $(v_0, \dots, v_{n-1})$, returns
        $$\left(\max_i v_i, \min\{i \colon v_i = \max_j v_j\}\right)$$
        as a ``(float, int)`` pair.
        Ties therefore resolve to the smallest index, and an input consisting solely of $-\infty$ entries
        yields ``(-inf, 0)``.

        For inputs of higher rank, reduces along ``dim`` and returns the tensors of maxima and maximizing indices.

        Parameters
        ----------
        values
            The values to maximize over (a sequence of reals or a tensor)
        dim
            The dimension to reduce for inputs of rank larger than one; by default the last one

        Returns
        -------
        tuple
            The maximum and the first maximizing index

        Raises
        ------
        ValueError
            Raised if there is nothing to maximize over.
    """
    if not isinstance(values, Tensor):
        values = torch.as_tensor(values, dtype=torch.float64)

    if values.dim() == 0 or values.size(dim) == 0:
        raise ValueError("Need at least one value to maximize over.")

    # `torch.max` reports the first maximal entry of every reduced row
    maxima, indices = values.max(dim=dim)

    if values.dim() == 1:
        return maxima.item(), int(indices)
    return maxima, indices
