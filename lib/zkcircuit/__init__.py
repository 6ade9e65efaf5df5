from zkcircuit.hash_combiner import HashCombiner, AdditiveCombiner, Sha256Combiner, resolve_combiner
from zkcircuit.merkle_tree import MerkleTree
from zkcircuit.r1cs import Operation, Variable, R1CSConstraint, R1CSSystem
from zkcircuit.circuit import Circuit, Gate, AdditionGate, MultiplicationGate, HashGate
from zkcircuit.exceptions import *
