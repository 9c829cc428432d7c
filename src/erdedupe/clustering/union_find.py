"""Index-based Union-Find (Disjoint Set Union) for clustering.

Record identifiers are mapped once to dense integer indices (in sorted
identifier order); parents, ranks and member lists live in plain lists
indexed by those integers.
"""

from collections.abc import Iterable


class UnionFind:
    """Union-Find over a fixed universe with path compression and union by rank.

    Each root also owns the list of its members, merged small-into-large,
    so group sizes and memberships are available without a full scan.

    Attributes
    ----------
    elements : tuple[str, ...]
        Identifiers in index order (sorted).
    parent : list[int]
        Parent index for each element.
    rank : list[int]
        Rank (approximate tree height) for each root.
    """

    def __init__(self, elements: Iterable[str]) -> None:
        """Initialize one singleton set per distinct element.

        Parameters
        ----------
        elements : Iterable[str]
            Identifiers forming the universe.
        """
        self.elements: tuple[str, ...] = tuple(sorted(set(elements)))
        self._index: dict[str, int] = {rid: i for i, rid in enumerate(self.elements)}
        self.parent: list[int] = list(range(len(self.elements)))
        self.rank: list[int] = [0] * len(self.elements)
        self._members: list[list[int]] = [[i] for i in range(len(self.elements))]

    def __len__(self) -> int:
        return len(self.elements)

    def index_of(self, rid: str) -> int:
        """Return the dense index of an identifier.

        Raises
        ------
        KeyError
            If the identifier is not part of the universe.
        """
        return self._index[rid]

    def find(self, x: int) -> int:
        """Find the root index of the set containing ``x`` (iterative path compression).

        Parameters
        ----------
        x : int
            Element index.

        Returns
        -------
        int
            Root index.
        """
        root = x
        while self.parent[root] != root:
            root = self.parent[root]

        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]

        return root

    def find_rid(self, rid: str) -> int:
        """Find the root index of the set containing identifier ``rid``."""
        return self.find(self._index[rid])

    def union(self, x: int, y: int) -> int:
        """Union the sets containing ``x`` and ``y`` using union by rank.

        Parameters
        ----------
        x : int
            First element index.
        y : int
            Second element index.

        Returns
        -------
        int
            Root index of the merged set.
        """
        root_x = self.find(x)
        root_y = self.find(y)

        if root_x == root_y:
            return root_x

        if self.rank[root_x] < self.rank[root_y]:
            root_x, root_y = root_y, root_x
        elif self.rank[root_x] == self.rank[root_y]:
            self.rank[root_x] += 1

        self.parent[root_y] = root_x

        # Keep the larger list in place
        if len(self._members[root_x]) < len(self._members[root_y]):
            self._members[root_x], self._members[root_y] = (
                self._members[root_y],
                self._members[root_x],
            )
        self._members[root_x].extend(self._members[root_y])
        self._members[root_y] = []

        return root_x

    def size(self, x: int) -> int:
        """Return the size of the set containing ``x``."""
        return len(self._members[self.find(x)])

    def members(self, x: int) -> list[int]:
        """Return the member indices of the set containing ``x``."""
        return self._members[self.find(x)]

    def get_components(self) -> list[tuple[str, ...]]:
        """Get all sets as sorted identifier tuples, ordered by first member.

        Returns
        -------
        list[tuple[str, ...]]
            Disjoint components covering the universe.
        """
        components = [
            tuple(sorted(self.elements[i] for i in members))
            for root, members in enumerate(self._members)
            if members and self.parent[root] == root
        ]
        components.sort()
        return components
