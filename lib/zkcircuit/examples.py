"""
Demonstration drivers: an addition proof, a multiplication proof, and a Merkle
membership proof. Run with `python -m zkcircuit.examples [config.json]`.
"""

import logging
import sys
from pathlib import Path
from zkcircuit.circuit import Circuit, AdditionGate, MultiplicationGate
from zkcircuit.config import DEFAULT_CONFIG, load_config
from zkcircuit.hash_combiner import Sha256Combiner
from zkcircuit.log import setup_logger
from zkcircuit.merkle_tree import MerkleTree

log = logging.getLogger(__name__)


def _proof_path(config: dict, key: str) -> str:
    return str(Path(config['proof_dir']) / config[key])


def additional_proof(config: dict=DEFAULT_CONFIG) -> bool:
    circuit = Circuit()
    a       = circuit.add_input(1)
    b       = circuit.add_input(2)
    out     = circuit.add_input(3)

    circuit.add_gate(AdditionGate(a, b, out))
    circuit.set_output(3)

    proof_file = _proof_path(config, 'additional_proof_filename')
    circuit.generate_proof(proof_file)
    return circuit.verify_proof(proof_file)


def multiplication_proof(config: dict=DEFAULT_CONFIG) -> bool:
    circuit = Circuit()
    a       = circuit.add_input(3)
    b       = circuit.add_input(2)
    out     = circuit.add_input(6)

    circuit.add_gate(MultiplicationGate(a, b, out))
    circuit.set_output(6)

    proof_file = _proof_path(config, 'multiplication_proof_filename')
    circuit.generate_proof(proof_file)
    return circuit.verify_proof(proof_file)


def merkle_tree_proof(config: dict=DEFAULT_CONFIG, hash_func: 'HashCombiner'=None) -> bool:
    hash_func  = hash_func or Sha256Combiner()
    leaves     = config['merkle_leaves']
    leaf_index = config['merkle_leaf_index']

    tree    = MerkleTree(leaves, hash_func)
    circuit = Circuit(hash_func)
    circuit.add_merkle_path(leaves[leaf_index], tree.merkle_path(leaf_index), root=tree.root)

    if config.get('r1cs_snapshot_filename'):
        circuit.build_r1cs_system().save_to_binary(_proof_path(config, 'r1cs_snapshot_filename'))

    proof_file = _proof_path(config, 'merkle_proof_filename')
    circuit.generate_proof(proof_file)
    return circuit.verify_proof(proof_file)


def main(argv: list=None) -> int:
    argv   = argv if argv is not None else sys.argv[1:]
    config = load_config(argv[0]) if argv else dict(DEFAULT_CONFIG)
    setup_logger(level=config['log_level'])

    Path(config['proof_dir']).mkdir(parents=True, exist_ok=True)

    results = {
        'additional': additional_proof(config),
        'multiplication': multiplication_proof(config),
        'merkle': merkle_tree_proof(config),
    }

    for name, is_valid in results.items():
        log.info('%s proof valid = %s', name, is_valid)

    return 0 if all(results.values()) else 1


if __name__ == '__main__':
    sys.exit(main())
