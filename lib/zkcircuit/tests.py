import json
import os
import tempfile
from unittest import TestCase
from zkcircuit.circuit import Circuit, AdditionGate, MultiplicationGate, HashGate
from zkcircuit.config import DEFAULT_CONFIG, load_config
from zkcircuit.examples import additional_proof, multiplication_proof, merkle_tree_proof, main
from zkcircuit.exceptions import GateIndexOutOfRangeException, LeafIndexOutOfRangeException, EmptyMerkleTreeException, EmptyProofException, InvalidProofException, R1CSSerializationException
from zkcircuit.hash_combiner import AdditiveCombiner, Sha256Combiner, HashCombiner, resolve_combiner
from zkcircuit.merkle_tree import MerkleTree
from zkcircuit.r1cs import R1CSSystem, Operation, Variable


def build_binary_circuit(gate_cls, a: int, b: int, c: int, hash_func=None):
    circuit = Circuit(hash_func)
    x, y, z = circuit.add_input(a), circuit.add_input(b), circuit.add_input(c)
    circuit.add_gate(gate_cls(x, y, z))
    return circuit


class CombinerTestCases(TestCase):
    def test_additive(self):
        self.assertEqual(AdditiveCombiner().hash(5, -7), -2)
        self.assertEqual(AdditiveCombiner()(2**200, 1), 2**200 + 1)


    def test_sha256_deterministic(self):
        H = Sha256Combiner()
        self.assertEqual(H.hash(1, 2), Sha256Combiner().hash(1, 2))
        self.assertNotEqual(H.hash(1, 2), H.hash(2, 1))
        self.assertNotEqual(H.hash(-1, 2), H.hash(1, 2))

        digest = H.hash(-2**300, 0)
        self.assertTrue(0 <= digest < 2**256)


    def test_resolve(self):
        self.assertIsInstance(resolve_combiner(None), AdditiveCombiner)

        H = Sha256Combiner()
        self.assertIs(resolve_combiner(H), H)

        wrapped = resolve_combiner(lambda a, b: a*b)
        self.assertIsInstance(wrapped, HashCombiner)
        self.assertEqual(wrapped(6, 7), 42)

        with self.assertRaises(TypeError):
            resolve_combiner(42)



class MerkleTreeTestCases(TestCase):
    def test_odd_leaves_duplicate_last(self):
        mt = MerkleTree([1, 2, 3, 4, 5])

        self.assertEqual(mt.levels, [[1, 2, 3, 4, 5], [3, 7, 10], [10, 20], [30]])
        self.assertEqual(mt.root, 30)

        path = mt.merkle_path(2)
        self.assertEqual(path, [(4, False), (3, True), (20, False)])
        self.assertEqual(MerkleTree.compute_root(3, path), 30)


    def test_even_leaves(self):
        mt = MerkleTree([1, 2, 3, 4])
        self.assertEqual(mt.root, 10)
        self.assertEqual(mt.merkle_path(3), [(3, True), (3, True)])


    def test_single_leaf(self):
        mt = MerkleTree([42], Sha256Combiner())
        self.assertEqual(mt.root, 42)
        self.assertEqual(mt.merkle_path(0), [])
        self.assertTrue(mt.verify(42, []))


    def test_empty(self):
        with self.assertRaises(EmptyMerkleTreeException):
            MerkleTree([])


    def test_path_round_trip(self):
        for hash_func in (None, Sha256Combiner()):
            for n in range(1, 10):
                leaves = [i*7 - 3 for i in range(n)]
                mt     = MerkleTree(leaves, hash_func)

                for i, leaf in enumerate(leaves):
                    self.assertEqual(MerkleTree.compute_root(leaf, mt.merkle_path(i), hash_func), mt.root)
                    self.assertTrue(mt.verify(leaf, mt.merkle_path(i)))


    def test_wrong_leaf_fails(self):
        mt = MerkleTree([10, 20, 30, 40], Sha256Combiner())
        self.assertFalse(mt.verify(11, mt.merkle_path(0)))


    def test_path_out_of_range(self):
        mt = MerkleTree([1, 2, 3, 4, 5])

        for idx in (5, 6, -1):
            with self.assertRaises(LeafIndexOutOfRangeException):
                mt.merkle_path(idx)

        with self.assertRaises(IndexError):
            mt.merkle_path(100)



class R1CSTestCases(TestCase):
    def test_empty_system(self):
        self.assertTrue(R1CSSystem().is_satisfied(AdditiveCombiner()))
        self.assertTrue(R1CSSystem().is_satisfied(AdditiveCombiner(), first_constraint_only=True))


    def test_linear_combinations(self):
        x, y, one = Variable(0, 2), Variable(1, 5), Variable(2, 1)
        out       = Variable(3, 15)

        system = R1CSSystem([x, y, one, out])
        system.add_constraint([(x, 3), (y, 1)], [(one, 4)], [(out, 1)], Operation.ADD)
        self.assertTrue(system.is_satisfied(AdditiveCombiner()))

        system.add_constraint([(x, 3), (y, 1)], [(one, 4)], [(out, 1), (one, 29)], Operation.MUL)
        self.assertTrue(system.is_satisfied(AdditiveCombiner()))

        system.add_constraint([(x, 1)], [(y, 1)], [(out, -1)], Operation.ADD)
        self.assertFalse(system.is_satisfied(AdditiveCombiner()))
        self.assertEqual(system.unsatisfied_constraints(AdditiveCombiner()), [2])


    def test_first_constraint_only(self):
        a, b, c = Variable(0, 1), Variable(1, 2), Variable(2, 3)

        system = R1CSSystem([a, b, c])
        system.add_constraint([(a, 1)], [(b, 1)], [(c, 1)], Operation.ADD)
        system.add_constraint([(a, 1)], [(b, 1)], [(c, 1)], Operation.MUL)

        self.assertFalse(system.is_satisfied(AdditiveCombiner()))
        self.assertTrue(system.is_satisfied(AdditiveCombiner(), first_constraint_only=True))


    def test_snapshot_round_trip(self):
        mt      = MerkleTree([-5, 2**130, 0, 17], Sha256Combiner())
        circuit = Circuit(Sha256Combiner())
        circuit.add_merkle_path(-5, mt.merkle_path(0), root=mt.root)

        system   = circuit.build_r1cs_system()
        restored = R1CSSystem.from_bytes(system.to_bytes())

        self.assertEqual([(v.index, v.value) for v in restored.variables], [(v.index, v.value) for v in system.variables])
        self.assertEqual(len(restored.constraints), len(system.constraints))

        for orig, new in zip(system.constraints, restored.constraints):
            self.assertEqual(orig.operation, new.operation)
            for orig_side, new_side in zip((orig.left, orig.right, orig.output), (new.left, new.right, new.output)):
                self.assertEqual([(v.index, v.value, c) for v, c in orig_side], [(v.index, v.value, c) for v, c in new_side])

        self.assertTrue(restored.is_satisfied(circuit.apply_hash))


    def test_snapshot_file(self):
        system = build_binary_circuit(MultiplicationGate, -3, 4, -12).build_r1cs_system()

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'r1cs.bin')
            system.save_to_binary(path)
            restored = R1CSSystem.load_from_binary(path)

        self.assertEqual(restored.constraints[0].operation, Operation.MUL)
        self.assertTrue(restored.is_satisfied(AdditiveCombiner()))


    def test_snapshot_malformed(self):
        data = bytes(build_binary_circuit(AdditionGate, 1, 2, 3).build_r1cs_system().to_bytes())

        for bad in (b'', b'XXXX' + data[4:], data[:-1], data + b'\x00', data[:4] + b'\x09' + data[5:]):
            with self.assertRaises(R1CSSerializationException):
                R1CSSystem.from_bytes(bad)


    def test_snapshot_unencodable(self):
        system = R1CSSystem([Variable(0, 1)])
        system.add_constraint([(Variable(0, 1), 1.5)], [], [], Operation.ADD)

        with self.assertRaises(R1CSSerializationException):
            system.to_bytes()



class CircuitTestCases(TestCase):
    def test_add(self):
        self.assertTrue(build_binary_circuit(AdditionGate, 1, 2, 3).is_satisfied())
        self.assertFalse(build_binary_circuit(AdditionGate, 1, 2, 4).is_satisfied())


    def test_mul(self):
        self.assertTrue(build_binary_circuit(MultiplicationGate, 3, 2, 6).is_satisfied())
        self.assertFalse(build_binary_circuit(MultiplicationGate, 3, 2, 5).is_satisfied())


    def test_all_gates_checked(self):
        circuit = Circuit()
        x, y    = circuit.add_input(2), circuit.add_input(3)
        s, p    = circuit.add_input(5), circuit.add_input(6)
        circuit.add_gate(AdditionGate(x, y, s))
        circuit.add_gate(MultiplicationGate(x, y, p))
        self.assertTrue(circuit.is_satisfied())

        bad = circuit.add_input(7)
        circuit.add_gate(MultiplicationGate(x, y, bad))
        self.assertFalse(circuit.is_satisfied())
        self.assertTrue(circuit.is_satisfied(first_constraint_only=True))


    def test_hash_gate_evaluated_eagerly(self):
        circuit = build_binary_circuit(HashGate, 3, 4, 0, Sha256Combiner())
        system  = circuit.build_r1cs_system()

        self.assertEqual(system.variables[2].value, Sha256Combiner().hash(3, 4))
        self.assertEqual(circuit.inputs[2], 0)
        self.assertTrue(system.is_satisfied(circuit.apply_hash))


    def test_hash_gate_combiner_change(self):
        circuit = build_binary_circuit(HashGate, 3, 4, 0)
        system  = circuit.build_r1cs_system()

        self.assertEqual(system.variables[2].value, 7)
        self.assertTrue(system.is_satisfied(circuit.apply_hash))
        self.assertFalse(system.is_satisfied(lambda a, b: a*b))
        self.assertFalse(system.is_satisfied(Sha256Combiner()))


    def test_constraints_hold_snapshots(self):
        circuit = Circuit()
        a, b, c = circuit.add_input(1), circuit.add_input(2), circuit.add_input(3)
        circuit.add_gate(AdditionGate(a, b, c))
        circuit.add_gate(HashGate(a, a, c))

        system = circuit.build_r1cs_system()
        self.assertEqual(system.constraints[0].output[0][0].value, 3)
        self.assertEqual(system.variables[c].value, 2)
        self.assertTrue(system.is_satisfied(circuit.apply_hash))


    def test_gate_index_out_of_range(self):
        for gate in (AdditionGate(0, 1, 2), MultiplicationGate(0, -1, 1), HashGate(5, 0, 1)):
            circuit = Circuit()
            circuit.add_input(1)
            circuit.add_input(2)
            circuit.add_gate(gate)

            with self.assertRaises(GateIndexOutOfRangeException):
                circuit.build_r1cs_system()


    def test_get_input(self):
        circuit = Circuit()
        idx     = circuit.add_input(9)
        self.assertEqual(idx, 0)
        self.assertEqual(circuit.get_input(idx), 9)
        self.assertIsNone(circuit.get_input(1))
        self.assertIsNone(circuit.get_input(-1))


    def test_outputs_are_observational(self):
        circuit = build_binary_circuit(AdditionGate, 1, 2, 3)
        circuit.set_output(1000)
        self.assertEqual(circuit.outputs, [1000])
        self.assertTrue(circuit.is_satisfied())


    def test_apply_hash(self):
        self.assertEqual(Circuit().apply_hash(4, 5), 9)
        self.assertEqual(Circuit(Sha256Combiner()).apply_hash(4, 5), Sha256Combiner().hash(4, 5))



class ProofTestCases(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def path(self, name):
        return os.path.join(self.tmp.name, name)


    def test_valid_proof(self):
        circuit = build_binary_circuit(AdditionGate, 1, 2, 3)
        self.assertTrue(circuit.generate_proof(self.path('p.bin')))

        with open(self.path('p.bin'), 'rb') as f:
            self.assertEqual(f.read(), b'\x01')

        self.assertTrue(circuit.verify_proof(self.path('p.bin')))


    def test_invalid_proof(self):
        circuit = build_binary_circuit(MultiplicationGate, 3, 2, 5)
        self.assertFalse(circuit.generate_proof(self.path('p.bin')))

        with open(self.path('p.bin'), 'rb') as f:
            self.assertEqual(f.read(), b'\x00')

        self.assertFalse(circuit.verify_proof(self.path('p.bin')))


    def test_generate_idempotent(self):
        circuit = build_binary_circuit(HashGate, 8, 9, 0, Sha256Combiner())
        circuit.generate_proof(self.path('a.bin'))
        circuit.generate_proof(self.path('b.bin'))

        with open(self.path('a.bin'), 'rb') as a, open(self.path('b.bin'), 'rb') as b:
            self.assertEqual(a.read(), b.read())


    def test_overwrites(self):
        with open(self.path('p.bin'), 'wb') as f:
            f.write(b'\x01\x01\x01')

        build_binary_circuit(AdditionGate, 1, 1, 3).generate_proof(self.path('p.bin'))
        with open(self.path('p.bin'), 'rb') as f:
            self.assertEqual(f.read(), b'\x00')


    def test_io_failures(self):
        circuit = build_binary_circuit(AdditionGate, 1, 2, 3)

        with self.assertRaises(FileNotFoundError):
            circuit.verify_proof(self.path('missing.bin'))

        with self.assertRaises(OSError):
            circuit.generate_proof(self.path(os.path.join('no', 'such', 'dir', 'p.bin')))


    def test_bad_artifact(self):
        circuit = Circuit()

        with open(self.path('empty.bin'), 'wb'):
            pass

        with self.assertRaises(EmptyProofException):
            circuit.verify_proof(self.path('empty.bin'))

        with open(self.path('junk.bin'), 'wb') as f:
            f.write(b'\x07')

        with self.assertRaises(InvalidProofException):
            circuit.verify_proof(self.path('junk.bin'))



class MerkleCircuitTestCases(TestCase):
    def test_membership(self):
        for hash_func in (None, Sha256Combiner()):
            leaves = [1, 2, 3, 4, 5]
            mt     = MerkleTree(leaves, hash_func)

            for i, leaf in enumerate(leaves):
                circuit  = Circuit(hash_func)
                root_idx = circuit.add_merkle_path(leaf, mt.merkle_path(i), root=mt.root)

                self.assertEqual(circuit.inputs[root_idx], mt.root)
                self.assertEqual(circuit.outputs[-1], mt.root)
                self.assertTrue(circuit.is_satisfied())


    def test_wrong_root(self):
        mt      = MerkleTree([1, 2, 3, 4, 5], Sha256Combiner())
        circuit = Circuit(Sha256Combiner())
        circuit.add_merkle_path(3, mt.merkle_path(2), root=mt.root + 1)
        self.assertFalse(circuit.is_satisfied())


    def test_mismatched_combiner(self):
        mt      = MerkleTree([1, 2, 3, 4, 5], Sha256Combiner())
        circuit = Circuit()
        circuit.add_merkle_path(3, mt.merkle_path(2), root=mt.root)
        self.assertFalse(circuit.is_satisfied())


    def test_without_root(self):
        mt       = MerkleTree([1, 2, 3, 4, 5])
        circuit  = Circuit()
        root_idx = circuit.add_merkle_path(3, mt.merkle_path(2))

        self.assertEqual(circuit.get_input(root_idx), 30)
        self.assertEqual(len(circuit.gates), 3)
        self.assertTrue(all(type(g) is HashGate for g in circuit.gates))
        self.assertTrue(circuit.is_satisfied())



class DriverTestCases(TestCase):
    def setUp(self):
        self.tmp    = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.config = dict(DEFAULT_CONFIG, proof_dir=self.tmp.name, r1cs_snapshot_filename='merkle.r1cs')


    def test_examples(self):
        self.assertTrue(additional_proof(self.config))
        self.assertTrue(multiplication_proof(self.config))
        self.assertTrue(merkle_tree_proof(self.config))

        restored = R1CSSystem.load_from_binary(os.path.join(self.tmp.name, 'merkle.r1cs'))
        self.assertTrue(restored.is_satisfied(Sha256Combiner()))


    def test_main(self):
        path = os.path.join(self.tmp.name, 'config.json')
        with open(path, 'w') as f:
            json.dump({'proof_dir': self.tmp.name, 'merkle_leaves': [9, 8, 7], 'merkle_leaf_index': 1, 'log_level': 'WARNING'}, f)

        self.assertEqual(main([path]), 0)
        self.assertTrue(os.path.exists(os.path.join(self.tmp.name, 'merkle_proof.bin')))


    def test_load_config(self):
        path = os.path.join(self.tmp.name, 'config.json')
        with open(path, 'w') as f:
            json.dump({'merkle_leaf_index': 4}, f)

        config = load_config(path)
        self.assertEqual(config['merkle_leaf_index'], 4)
        self.assertEqual(config['merkle_leaves'], DEFAULT_CONFIG['merkle_leaves'])
        self.assertEqual(DEFAULT_CONFIG['merkle_leaf_index'], 2)

        with self.assertRaises(FileNotFoundError):
            load_config(os.path.join(self.tmp.name, 'missing.json'))
