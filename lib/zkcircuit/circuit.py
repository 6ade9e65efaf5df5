import logging
from samson.core.base_object import BaseObject
from zkcircuit.exceptions import GateIndexOutOfRangeException, EmptyProofException, InvalidProofException
from zkcircuit.hash_combiner import resolve_combiner
from zkcircuit.r1cs import R1CSSystem, Operation, Variable

log = logging.getLogger(__name__)

PROOF_VALID   = b'\x01'
PROOF_INVALID = b'\x00'

#########
# GATES #
#########

class Gate(BaseObject):
    OPERATION = None

    def __init__(self, a: int, b: int, output: int):
        self.a      = a
        self.b      = b
        self.output = output


    def __reprdir__(self):
        return ['a', 'b', 'output']


    def __iter__(self):
        return iter((self.a, self.b, self.output))


    def __eq__(self, other):
        return type(self) is type(other) and tuple(self) == tuple(other)


    def __hash__(self):
        return hash((self.__class__, self.a, self.b, self.output))


    def validate(self, num_vars: int):
        for idx in self:
            if idx < 0 or idx >= num_vars:
                raise GateIndexOutOfRangeException(f'{self.__class__.__name__} references index {idx} but circuit has {num_vars} inputs')


    def generate_constraint(self, system: R1CSSystem, circuit: 'Circuit'):
        self.validate(len(system.variables))
        l, r, o = [system.variables[idx].snapshot() for idx in self]
        system.add_constraint([(l, 1)], [(r, 1)], [(o, 1)], self.OPERATION)


class AdditionGate(Gate):
    OPERATION = Operation.ADD

class MultiplicationGate(Gate):
    OPERATION = Operation.MUL


class HashGate(Gate):
    OPERATION = Operation.HASH

    def generate_constraint(self, system: R1CSSystem, circuit: 'Circuit'):
        self.validate(len(system.variables))

        # Evaluated eagerly from the circuit's own inputs, not the snapshot
        system.variables[self.output].value = circuit.apply_hash(circuit.inputs[self.a], circuit.inputs[self.b])
        super().generate_constraint(system, circuit)



###########
# CIRCUIT #
###########

class Circuit(BaseObject):
    """
    Gate-based circuit over an append-only vector of integer inputs.

    Parameters:
        hash_func (HashCombiner): Combiner for HASH gates. `None` selects addition.

    Examples:
        >>> from zkcircuit.circuit import Circuit, AdditionGate
        >>> circuit = Circuit()
        >>> a, b, c = circuit.add_input(1), circuit.add_input(2), circuit.add_input(3)
        >>> circuit.add_gate(AdditionGate(a, b, c))
        >>> circuit.is_satisfied()
        True

    """

    def __init__(self, hash_func: 'HashCombiner'=None):
        self.hash_func = resolve_combiner(hash_func)
        self.inputs    = []
        self.gates     = []
        self.outputs   = []


    def __reprdir__(self):
        return ['hash_func', 'inputs', 'gates', 'outputs']


    def add_input(self, value: int) -> int:
        self.inputs.append(value)
        return len(self.inputs) - 1


    def get_input(self, index: int) -> int:
        if 0 <= index < len(self.inputs):
            return self.inputs[index]

        return None


    def add_gate(self, gate: Gate):
        self.gates.append(gate)


    def set_output(self, value: int):
        self.outputs.append(value)


    def apply_hash(self, a: int, b: int) -> int:
        return self.hash_func(a, b)


    def build_r1cs_system(self) -> R1CSSystem:
        system = R1CSSystem([Variable(i, v) for i, v in enumerate(self.inputs)])

        for gate in self.gates:
            gate.generate_constraint(system, self)

        log.debug('Lowered %d gates over %d inputs', len(self.gates), len(self.inputs))
        return system


    def is_satisfied(self, first_constraint_only: bool=False) -> bool:
        system   = self.build_r1cs_system()
        is_valid = system.is_satisfied(self.apply_hash, first_constraint_only=first_constraint_only)

        if not is_valid:
            log.warning('Circuit unsatisfied; failing constraints: %s', system.unsatisfied_constraints(self.apply_hash))

        return is_valid


    def generate_proof(self, proof_file: str, first_constraint_only: bool=False) -> bool:
        """
        Lowers the circuit, checks it, and writes the one-byte result to `proof_file`.

        Parameters:
            proof_file             (str): Destination; created or overwritten.
            first_constraint_only (bool): Only evaluate the first constraint (legacy behaviour).

        Returns:
            bool: Whether the circuit was satisfied.
        """
        is_valid = self.is_satisfied(first_constraint_only=first_constraint_only)

        with open(proof_file, 'wb') as f:
            f.write(PROOF_VALID if is_valid else PROOF_INVALID)

        log.info('Wrote proof to %s (valid=%s)', proof_file, is_valid)
        return is_valid


    def verify_proof(self, proof_file: str) -> bool:
        with open(proof_file, 'rb') as f:
            proof_data = f.read()

        if not proof_data:
            raise EmptyProofException(f'Proof file {proof_file} is empty')

        if proof_data[:1] not in (PROOF_VALID, PROOF_INVALID):
            raise InvalidProofException(f'Proof file {proof_file} has unexpected content')

        is_valid = proof_data[:1] == PROOF_VALID
        log.info('Read proof from %s (valid=%s)', proof_file, is_valid)
        return is_valid


    def add_merkle_path(self, leaf_value: int, path: list, root: int=None) -> int:
        """
        Registers `leaf_value` and one HASH gate per step of `path`, combining in the order
        each step indicates. If `root` is given, an ADD gate pins the computed value to it.

        Parameters:
            leaf_value (int): Value of the leaf being authenticated.
            path      (list): `(sibling_value, sibling_is_left)` pairs from `MerkleTree.merkle_path`.
            root       (int): Expected root.

        Returns:
            int: Index of the computed root.
        """
        curr_idx = self.add_input(leaf_value)

        for sibling, is_left in path:
            sib_idx = self.add_input(sibling)

            if is_left:
                l_idx, r_idx = sib_idx, curr_idx
            else:
                l_idx, r_idx = curr_idx, sib_idx

            new_hash = self.apply_hash(self.inputs[l_idx], self.inputs[r_idx])
            new_idx  = self.add_input(new_hash)
            self.set_output(new_hash)

            self.add_gate(HashGate(l_idx, r_idx, new_idx))
            curr_idx = new_idx

        if root is not None:
            zero_idx = self.add_input(0)
            root_idx = self.add_input(root)
            self.add_gate(AdditionGate(curr_idx, zero_idx, root_idx))
            self.set_output(root)

        return curr_idx
