"""
Tests for the SoulboundRegistry smart contract — PyTeal compilation and
logic structure.

Tests: Contract compiles, TEAL output structure, metadata, compiler output.
"""
import json
import os

import pytest
from pyteal import compileTeal, Mode

from contracts.compile import TEAL_VERSION, compile_contract


def _approval_teal() -> str:
    from contracts.soulbound_registry.contract import approval_program
    return compileTeal(approval_program(), mode=Mode.Application, version=TEAL_VERSION)


class TestSoulboundRegistryCompilation:
    """Tests for SoulboundRegistry contract compilation."""

    @pytest.mark.contract
    def test_approval_program_compiles(self):
        teal = _approval_teal()
        assert teal
        assert "#pragma version 8" in teal

    @pytest.mark.contract
    def test_clear_program_compiles(self):
        from contracts.soulbound_registry.contract import clear_program
        teal = compileTeal(clear_program(), mode=Mode.Application, version=TEAL_VERSION)
        assert "#pragma version 8" in teal

    @pytest.mark.contract
    @pytest.mark.parametrize("method", ["mint", "unbind", "is_bound", "transfer", "transfer_admin"])
    def test_approval_contains_method_selector(self, method):
        teal = _approval_teal()
        assert f'"{method}"' in teal or "0x" + method.encode().hex() in teal

    @pytest.mark.contract
    def test_approval_uses_box_storage(self):
        """Token records live in boxes keyed by itob(token_id)."""
        teal = _approval_teal()
        assert "box_put" in teal
        assert "box_get" in teal
        assert "box_replace" in teal

    @pytest.mark.contract
    def test_approval_logs_events(self):
        teal = _approval_teal()
        assert "log" in teal
        assert '"BOUND"' in teal or "0x424f554e44" in teal
        assert '"UNBOUND"' in teal or "0x554e424f554e44" in teal

    @pytest.mark.contract
    def test_approval_has_no_inner_transactions(self):
        assert "itxn_begin" not in _approval_teal()


class TestSoulboundRegistryMetadata:
    """Tests for contract metadata constants."""

    @pytest.mark.contract
    def test_contract_name(self):
        from contracts.soulbound_registry.contract import CONTRACT_NAME
        assert CONTRACT_NAME == "SoulboundRegistry"

    @pytest.mark.contract
    def test_state_schema(self):
        from contracts.soulbound_registry import contract
        assert contract.GLOBAL_UINTS == 1   # next_token_id
        assert contract.GLOBAL_BYTES == 2   # admin_address, base_uri
        assert contract.LOCAL_UINTS == 0
        assert contract.LOCAL_BYTES == 0

    @pytest.mark.contract
    def test_box_layout(self):
        from contracts.soulbound_registry import contract
        assert contract.BOX_KEY_BYTES == 8
        assert contract.BOX_VALUE_BYTES == 64  # owner + bound_to

    @pytest.mark.contract
    def test_methods_list(self):
        from contracts.soulbound_registry.contract import CONTRACT_METHODS
        assert set(CONTRACT_METHODS) == {"mint", "unbind", "is_bound", "transfer", "transfer_admin"}


class TestCompileScript:

    @pytest.mark.contract
    def test_compile_contract_writes_artifacts(self, tmp_path):
        info = compile_contract("soulbound_registry", output_dir=str(tmp_path))

        assert info["name"] == "SoulboundRegistry"
        assert info["teal_version"] == TEAL_VERSION
        assert info["box_value_bytes"] == 64

        assert (tmp_path / "approval.teal").read_text().startswith("#pragma version 8")
        assert (tmp_path / "clear.teal").exists()
        with open(os.path.join(tmp_path, "contract_info.json")) as f:
            assert json.load(f)["methods"] == info["methods"]

    @pytest.mark.contract
    def test_compile_missing_contract_returns_none(self, tmp_path):
        assert compile_contract("does_not_exist", output_dir=str(tmp_path)) is None


def _teal_lines() -> list[str]:
    return [line.strip() for line in _approval_teal().splitlines() if line.strip()]


def _find(lines: list[str], sequence: list[str], start: int = 0) -> int:
    """Index of the first run of `sequence` in `lines` at or after `start`, or -1."""
    for i in range(start, len(lines) - len(sequence) + 1):
        if lines[i:i + len(sequence)] == sequence:
            return i
    return -1


class TestSoulboundRegistryGuards:
    """Ordering of the checks in the compiled program."""

    @pytest.mark.contract
    def test_transfer_rejects_token_bound_to_sender_before_writing(self):
        lines = _teal_lines()
        guard = _find(lines, ["extract 32 32", "txn Sender", "!=", "assert"])
        assert guard != -1

        owner_check = _find(lines, ["extract 0 32", "txn Sender", "==", "assert"], guard)
        assert owner_check > guard

        write = lines.index("box_replace", owner_check)
        assert lines[write - 2:write] == ["int 0", "txna ApplicationArgs 2"]

    @pytest.mark.contract
    def test_unbind_requires_owner_equal_to_binding(self):
        lines = _teal_lines()
        first_write = lines.index("box_replace")

        owner = _find(lines, ["extract 0 32"])
        assert owner != -1 and owner < first_write
        bound = lines.index("extract 32 32", owner)
        assert lines[bound + 1:bound + 3] == ["==", "assert"]
        assert bound < first_write

        # the binding is cleared by writing the zero address at offset 32
        assert lines[first_write - 2:first_write] == ["int 32", "global ZeroAddress"]
