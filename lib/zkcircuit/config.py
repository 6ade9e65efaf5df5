"""
Default configuration for the demonstration drivers, and a loader that
overrides it from a JSON file.
"""

import json
from pathlib import Path

DEFAULT_CONFIG = {
    'proof_dir': '.',
    'additional_proof_filename': 'additional_proof.bin',
    'multiplication_proof_filename': 'multiplication_proof.bin',
    'merkle_proof_filename': 'merkle_proof.bin',
    'r1cs_snapshot_filename': None,    # write the Merkle circuit's R1CS here when set
    'merkle_leaves': [1, 2, 3, 4, 5],
    'merkle_leaf_index': 2,
    'log_level': 'INFO',
}


def load_config(path: str, base: dict=None) -> dict:
    """
    Load a JSON config file and shallow-merge it into `base` (or `DEFAULT_CONFIG`).
    """
    base = dict(base if base is not None else DEFAULT_CONFIG)
    p    = Path(path)
    if not p.exists():
        raise FileNotFoundError(f'Config file not found: {path}')

    with p.open('r', encoding='utf-8') as fh:
        data = json.load(fh)

    for k, v in data.items():
        base[k] = v

    return base
