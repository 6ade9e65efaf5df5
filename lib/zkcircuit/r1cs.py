import logging
import struct
from enum import IntEnum
from samson.core.base_object import BaseObject
from samson.utilities.bytes import Bytes
from zkcircuit.exceptions import R1CSSerializationException

log = logging.getLogger(__name__)

MAGIC   = b'R1CS'
VERSION = 1


class Operation(IntEnum):
    ADD  = 0
    MUL  = 1
    HASH = 2


class Variable(BaseObject):
    def __init__(self, index: int, value: int):
        self.index = index
        self.value = value

    def snapshot(self) -> 'Variable':
        return Variable(self.index, self.value)


def evaluate_terms(terms: list) -> int:
    return sum([var.value*coeff for var, coeff in terms])


class R1CSConstraint(BaseObject):
    """
    Three weighted sums checked against an operation-specific relation.

    Parameters:
        left      (list): `(Variable, coefficient)` terms.
        right     (list): `(Variable, coefficient)` terms.
        output    (list): `(Variable, coefficient)` terms.
        operation (Operation): Relation between the three sums.
    """

    def __init__(self, left: list, right: list, output: list, operation: Operation):
        self.left      = left
        self.right     = right
        self.output    = output
        self.operation = operation


    def __reprdir__(self):
        return ['operation', 'left', 'right', 'output']


    def is_satisfied(self, combine_fn) -> bool:
        L = evaluate_terms(self.left)
        R = evaluate_terms(self.right)
        O = evaluate_terms(self.output)

        if self.operation == Operation.ADD:
            return L + R == O

        elif self.operation == Operation.MUL:
            return L * R == O

        elif self.operation == Operation.HASH:
            return combine_fn(L, R) == O

        raise ValueError(f'Unknown operation {self.operation!r}')



class R1CSSystem(BaseObject):
    def __init__(self, variables: list=None, constraints: list=None):
        self.variables   = variables if variables is not None else []
        self.constraints = constraints if constraints is not None else []


    def add_constraint(self, left: list, right: list, output: list, operation: Operation):
        self.constraints.append(R1CSConstraint(left, right, output, operation))


    def unsatisfied_constraints(self, combine_fn) -> list:
        return [i for i, con in enumerate(self.constraints) if not con.is_satisfied(combine_fn)]


    def is_satisfied(self, combine_fn, first_constraint_only: bool=False) -> bool:
        """
        Checks every constraint under `combine_fn`.

        Parameters:
            combine_fn             (func): Two-argument combiner used by HASH constraints.
            first_constraint_only  (bool): Only evaluate the first constraint (legacy behaviour).

        Returns:
            bool: Whether the assignment satisfies the system. An empty system is satisfied.
        """
        if first_constraint_only:
            if not self.constraints:
                return True

            return self.constraints[0].is_satisfied(combine_fn)

        return all(con.is_satisfied(combine_fn) for con in self.constraints)


    #################
    # SERIALIZATION #
    #################

    def to_bytes(self) -> Bytes:
        try:
            ser  = MAGIC + struct.pack('>B', VERSION)
            ser += struct.pack('>I', len(self.variables))

            for var in self.variables:
                ser += _pack_variable(var)

            ser += struct.pack('>I', len(self.constraints))
            for con in self.constraints:
                ser += struct.pack('>B', int(con.operation))

                for terms in (con.left, con.right, con.output):
                    ser += struct.pack('>I', len(terms))
                    for var, coeff in terms:
                        ser += _pack_variable(var) + pack_int(coeff)

        except (struct.error, AttributeError, TypeError, ValueError, OverflowError) as e:
            raise R1CSSerializationException('Unable to serialize R1CS') from e

        return Bytes(ser)


    @staticmethod
    def from_bytes(data: bytes) -> 'R1CSSystem':
        reader = _Reader(bytes(data))

        try:
            if reader.read(4) != MAGIC:
                raise R1CSSerializationException('Bad R1CS magic')

            version, = reader.unpack('>B')
            if version != VERSION:
                raise R1CSSerializationException(f'Unsupported R1CS snapshot version {version}')

            num_vars, = reader.unpack('>I')
            variables = [reader.read_variable() for _ in range(num_vars)]

            system = R1CSSystem(variables)
            num_cons, = reader.unpack('>I')

            for _ in range(num_cons):
                op,    = reader.unpack('>B')
                operation = Operation(op)
                sides  = []

                for _ in range(3):
                    num_terms, = reader.unpack('>I')
                    sides.append([(reader.read_variable(), reader.read_int()) for _ in range(num_terms)])

                system.add_constraint(*sides, operation)

        except (struct.error, ValueError) as e:
            if isinstance(e, R1CSSerializationException):
                raise

            raise R1CSSerializationException('Malformed R1CS snapshot') from e

        if not reader.exhausted():
            raise R1CSSerializationException('Trailing data after R1CS snapshot')

        return system


    def save_to_binary(self, filename: str):
        data = self.to_bytes()
        with open(filename, 'wb') as f:
            f.write(data)

        log.debug('Wrote R1CS snapshot with %d constraints to %s', len(self.constraints), filename)


    @staticmethod
    def load_from_binary(filename: str) -> 'R1CSSystem':
        with open(filename, 'rb') as f:
            return R1CSSystem.from_bytes(f.read())



def pack_int(value: int) -> bytes:
    raw = value.to_bytes((value.bit_length() + 8) // 8, 'big', signed=True)
    return struct.pack('>I', len(raw)) + raw


def _pack_variable(var: Variable) -> bytes:
    return struct.pack('>Q', var.index) + pack_int(var.value)


class _Reader(object):
    def __init__(self, data: bytes):
        self.data = data
        self.pos  = 0


    def read(self, size: int) -> bytes:
        if self.pos + size > len(self.data):
            raise R1CSSerializationException('Truncated R1CS snapshot')

        chunk     = self.data[self.pos:self.pos+size]
        self.pos += size
        return chunk


    def unpack(self, fmt: str) -> tuple:
        return struct.unpack(fmt, self.read(struct.calcsize(fmt)))


    def read_int(self) -> int:
        size, = self.unpack('>I')
        return int.from_bytes(self.read(size), 'big', signed=True)


    def read_variable(self) -> Variable:
        index, = self.unpack('>Q')
        return Variable(index, self.read_int())


    def exhausted(self) -> bool:
        return self.pos == len(self.data)
