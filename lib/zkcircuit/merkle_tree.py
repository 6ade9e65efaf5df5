import logging
from samson.core.base_object import BaseObject
from zkcircuit.exceptions import EmptyMerkleTreeException, LeafIndexOutOfRangeException
from zkcircuit.hash_combiner import resolve_combiner

log = logging.getLogger(__name__)


class MerkleTree(BaseObject):
    """
    Binary hash tree built bottom-up over a sequence of integer leaves.

    `hashes[0]` holds the leaves, each following level combines adjacent pairs
    left-to-right, and `hashes[-1]` is the single root. A level with an odd
    number of nodes pairs its last node with itself (duplicate-last).

    Parameters:
        leaves             (list): Leaf values, in order. Must not be empty.
        hash_func (HashCombiner): Combiner for parent nodes. Defaults to addition.

    Examples:
        >>> from zkcircuit.merkle_tree import MerkleTree
        >>> mt = MerkleTree([1, 2, 3, 4, 5])
        >>> mt.root
        30
        >>> mt.merkle_path(2)
        [(4, False), (3, True), (20, False)]

    """

    def __init__(self, leaves: list, hash_func: 'HashCombiner'=None):
        if not leaves:
            raise EmptyMerkleTreeException('Merkle tree needs at least one leaf')

        self.leaves    = list(leaves)
        self.hash_func = resolve_combiner(hash_func)
        self.hashes    = [list(self.leaves)]
        self._build()


    def __reprdir__(self):
        return ['root', 'depth']


    def _build(self):
        level = self.hashes[0]

        while len(level) > 1:
            next_level = []
            for i in range(0, len(level), 2):
                l = level[i]
                r = level[i+1] if i + 1 < len(level) else l
                next_level.append(self.hash_func(l, r))

            self.hashes.append(next_level)
            level = next_level

        log.debug('Built Merkle tree over %d leaves with depth %d', len(self.leaves), self.depth)


    @property
    def root(self) -> int:
        assert len(self.hashes[-1]) == 1
        return self.hashes[-1][0]


    @property
    def depth(self) -> int:
        return len(self.hashes) - 1


    @property
    def levels(self) -> list:
        return [list(level) for level in self.hashes]


    def merkle_path(self, leaf_index: int) -> list:
        """
        Returns the `(sibling_value, sibling_is_left)` pairs from the leaf level up to,
        but not including, the root.
        """
        if leaf_index < 0 or leaf_index >= len(self.leaves):
            raise LeafIndexOutOfRangeException(f'Leaf index {leaf_index} out of range for {len(self.leaves)} leaves')

        path = []
        idx  = leaf_index

        for level in self.hashes[:-1]:
            sib_idx = idx ^ 1

            # Unpaired last node was combined with itself
            if sib_idx >= len(level):
                path.append((level[idx], False))
            else:
                path.append((level[sib_idx], bool(idx & 1)))

            idx >>= 1

        return path


    @staticmethod
    def compute_root(leaf_value: int, path: list, hash_func: 'HashCombiner'=None) -> int:
        hash_func = resolve_combiner(hash_func)
        curr_hash = leaf_value

        for other_hash, is_left in path:
            if is_left:
                l,r = other_hash, curr_hash
            else:
                l,r = curr_hash, other_hash

            curr_hash = hash_func(l, r)

        return curr_hash


    def verify(self, leaf_value: int, path: list) -> bool:
        return self.compute_root(leaf_value, path, self.hash_func) == self.root
