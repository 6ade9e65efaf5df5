from samson.core.base_object import BaseObject
from samson.hashes.sha2 import SHA256
from samson.utilities.bytes import Bytes
from zkcircuit.r1cs import pack_int


class HashCombiner(BaseObject):
    """
    Deterministic two-argument function standing in for a cryptographic hash.

    Subclasses must be stateless so a single instance can be shared between a
    Merkle tree and every circuit that verifies paths from it.
    """

    def __reprdir__(self):
        return []

    def hash(self, a: int, b: int) -> int:
        raise NotImplementedError

    def __call__(self, a: int, b: int) -> int:
        return self.hash(a, b)


class AdditiveCombiner(HashCombiner):
    """
    Identity variant used when a circuit is built without a combiner.
    """

    def hash(self, a: int, b: int) -> int:
        return a + b


class Sha256Combiner(HashCombiner):
    def __init__(self):
        self.H = SHA256()


    def hash(self, a: int, b: int) -> int:
        return self.H.hash(Bytes(pack_int(a) + pack_int(b))).int()


class FunctionCombiner(HashCombiner):
    def __init__(self, func):
        self.func = func

    def __reprdir__(self):
        return ['func']

    def hash(self, a: int, b: int) -> int:
        return self.func(a, b)


def resolve_combiner(combiner) -> HashCombiner:
    """
    Normalizes `None`, a `HashCombiner`, or a plain callable into a `HashCombiner`.
    """
    if combiner is None:
        return AdditiveCombiner()

    if isinstance(combiner, HashCombiner):
        return combiner

    if callable(combiner):
        return FunctionCombiner(combiner)

    raise TypeError(f'Cannot use {type(combiner).__name__} as a hash combiner')
