"""MNA system container: conductance matrix, source vector and node map."""

from __future__ import annotations

import numpy as np

from circuit_engine.exceptions import StampError


class MNASystem:
    """Augmented MNA system ``matrix · x = rhs``.

    Rows ``0..n-1`` are node voltages (from ``node_map``); rows ``n..`` are
    branch currents handed out by :meth:`allocate_branch`. Passing
    ``branch_count`` pre-sizes the system so no stamp has to grow it.
    """

    __slots__ = ("node_map", "reference", "matrix", "rhs", "branches", "_next_branch")

    def __init__(
        self,
        node_map: dict[str, int],
        branch_count: int = 0,
        reference: str = "unified-ground",
    ):
        self.node_map = dict(node_map)
        self.reference = reference
        size = len(self.node_map) + branch_count
        self.matrix = np.zeros((size, size))
        self.rhs = np.zeros(size)
        self.branches: dict[str, int] = {}  # owner id -> auxiliary index
        self._next_branch = len(self.node_map)

    @property
    def size(self) -> int:
        return self.rhs.shape[0]

    def index(self, node_id: str) -> int | None:
        return self.node_map.get(node_id)

    def allocate_branch(self, owner: str) -> int:
        """Hand out the next auxiliary row/column, growing n → n+1 if full."""
        if owner in self.branches:
            raise StampError(f"Branch current for '{owner}' already allocated")
        if self._next_branch >= self.size:
            self._grow()
        index = self._next_branch
        self._next_branch += 1
        self.branches[owner] = index
        return index

    def _grow(self) -> None:
        self.matrix = np.pad(self.matrix, ((0, 1), (0, 1)))
        self.rhs = np.pad(self.rhs, (0, 1))
