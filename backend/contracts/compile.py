"""
Smart contract compiler — compiles PyTeal contracts to TEAL.

Usage:
    python -m contracts.compile                       # Compiles all contracts
    python -m contracts.compile soulbound_registry    # Compiles a specific contract

Output per contract (in <contract>/compiled/ unless an output dir is given):
    approval.teal, clear.teal, contract_info.json
"""
import importlib
import json
import os
import sys
from typing import Optional

from pyteal import compileTeal, Mode


CONTRACTS_DIR = os.path.dirname(__file__)
TEAL_VERSION = 8  # box storage needs >= 8


def contract_info(module, contract_name: str) -> dict:
    """Deployment metadata declared by a contract module."""
    return {
        "name": getattr(module, "CONTRACT_NAME", contract_name),
        "description": getattr(module, "CONTRACT_DESCRIPTION", ""),
        "version": getattr(module, "CONTRACT_VERSION", "1.0.0"),
        "teal_version": TEAL_VERSION,
        "global_uints": getattr(module, "GLOBAL_UINTS", 0),
        "global_bytes": getattr(module, "GLOBAL_BYTES", 0),
        "local_uints": getattr(module, "LOCAL_UINTS", 0),
        "local_bytes": getattr(module, "LOCAL_BYTES", 0),
        "box_key_bytes": getattr(module, "BOX_KEY_BYTES", 0),
        "box_value_bytes": getattr(module, "BOX_VALUE_BYTES", 0),
        "methods": getattr(module, "CONTRACT_METHODS", []),
    }


def compile_contract(contract_name: str, output_dir: Optional[str] = None) -> Optional[dict]:
    """
    Compile a single contract by name.

    Returns the contract info dict, or None when the directory holds no
    contract.py.
    """
    contract_dir = os.path.join(CONTRACTS_DIR, contract_name)
    compiled_dir = output_dir or os.path.join(contract_dir, "compiled")

    if not os.path.exists(os.path.join(contract_dir, "contract.py")):
        print(f"  ⚠ Skipping '{contract_name}' — no contract.py found")
        return None

    module = importlib.import_module(f"contracts.{contract_name}.contract")
    if not hasattr(module, "approval_program") or not hasattr(module, "clear_program"):
        raise AttributeError(
            f"contracts.{contract_name}.contract must export approval_program() and clear_program()"
        )

    approval_teal = compileTeal(
        module.approval_program(), mode=Mode.Application, version=TEAL_VERSION
    )
    clear_teal = compileTeal(
        module.clear_program(), mode=Mode.Application, version=TEAL_VERSION
    )

    os.makedirs(compiled_dir, exist_ok=True)
    with open(os.path.join(compiled_dir, "approval.teal"), "w") as f:
        f.write(approval_teal)
    with open(os.path.join(compiled_dir, "clear.teal"), "w") as f:
        f.write(clear_teal)

    info = contract_info(module, contract_name)
    with open(os.path.join(compiled_dir, "contract_info.json"), "w") as f:
        json.dump(info, f, indent=2)

    print(f"  ✅ '{contract_name}' compiled → {os.path.relpath(compiled_dir)}")
    return info


def compile_all() -> list:
    """Compile every contract directory. Returns the info dicts."""
    compiled = []
    for entry in sorted(os.listdir(CONTRACTS_DIR)):
        entry_path = os.path.join(CONTRACTS_DIR, entry)
        if (
            os.path.isdir(entry_path)
            and entry != "__pycache__"
            and os.path.exists(os.path.join(entry_path, "contract.py"))
        ):
            print(f"\n📦 Compiling '{entry}'...")
            info = compile_contract(entry)
            if info:
                compiled.append(info)
    return compiled


if __name__ == "__main__":
    # Allow running from backend/ directory
    backend_dir = os.path.dirname(CONTRACTS_DIR)
    if backend_dir not in sys.path:
        sys.path.insert(0, backend_dir)

    if len(sys.argv) > 1:
        name = sys.argv[1]
        print(f"📦 Compiling '{name}'...")
        compile_contract(name)
    else:
        print("🔧 Compiling all contracts...")
        compile_all()

    print("\n✅ Done!")
