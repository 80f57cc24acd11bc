"""
Soulbound Registry Smart Contract — on-chain rendition of the registry's
bind/unbind state machine.

A token is minted by the admin straight into a binding with its recipient.
While the binding holds, the owner cannot transfer it. Only the admin can
release the binding, after which the owner may transfer freely.

On-chain State:
    Global:
        admin_address   (bytes)  — admin wallet (mint / unbind authority)
        base_uri        (bytes)  — metadata prefix; URI = base_uri + token_id
        next_token_id   (uint)   — next ID handed out by mint (starts at 0)

    Boxes (one per token), key = itob(token_id):
        [0:32]   owner address
        [32:64]  bound-to address (zero address = transferable)

Methods:
    mint(to)                    — Create token bound to `to` (admin only)
    unbind(token_key)           — Clear binding (admin only)
    is_bound(token_key, addr)   — Approves iff token is bound to `addr`
    transfer(token_key, to)     — Owner transfer, rejected while bound to sender
    transfer_admin(new_admin)   — Hand over admin rights (admin only)

Logs:
    BOUND    + itob(token_id) + owner
    UNBOUND  + itob(token_id)
    TRANSFER + itob(token_id) + from + to
"""

from pyteal import *

# ── Contract Metadata (read by compiler) ──────────────────────────
CONTRACT_NAME = "SoulboundRegistry"
CONTRACT_DESCRIPTION = (
    "Soulbound NFT registry — admin mints tokens bound to their recipient, "
    "bound tokens cannot be transferred until the admin unbinds them."
)
CONTRACT_VERSION = "1.0.0"
GLOBAL_UINTS = 1   # next_token_id
GLOBAL_BYTES = 2   # admin_address, base_uri
LOCAL_UINTS = 0
LOCAL_BYTES = 0
BOX_KEY_BYTES = 8      # itob(token_id)
BOX_VALUE_BYTES = 64   # owner(32) + bound_to(32)
CONTRACT_METHODS = ["mint", "unbind", "is_bound", "transfer", "transfer_admin"]


def _owner(record: Expr) -> Expr:
    return Extract(record, Int(0), Int(32))


def _bound_to(record: Expr) -> Expr:
    return Extract(record, Int(32), Int(32))


def _is_address(arg: Expr) -> Expr:
    return And(Len(arg) == Int(32), arg != Global.zero_address())


def approval_program():
    """Main approval program for the Soulbound Registry contract."""

    # ========== Global State Keys ==========
    admin_key = Bytes("admin_address")
    base_uri_key = Bytes("base_uri")
    next_id_key = Bytes("next_token_id")

    # ========== Helpers ==========
    is_admin = Txn.sender() == App.globalGet(admin_key)

    # ========== On Creation ==========
    # arg[0] = admin address (32 bytes)
    # arg[1] = base URI
    on_creation = Seq([
        Assert(Txn.application_args.length() == Int(2)),
        Assert(_is_address(Txn.application_args[0])),
        App.globalPut(admin_key, Txn.application_args[0]),
        App.globalPut(base_uri_key, Txn.application_args[1]),
        App.globalPut(next_id_key, Int(0)),
        Approve(),
    ])

    # ========== mint(to) ==========
    # arg[1] = recipient address (32 bytes)
    new_id = ScratchVar(TealType.uint64)
    on_mint = Seq([
        Assert(is_admin),
        Assert(Txn.application_args.length() == Int(2)),
        Assert(_is_address(Txn.application_args[1])),

        new_id.store(App.globalGet(next_id_key)),

        # owner and binding both start as the recipient
        App.box_put(
            Itob(new_id.load()),
            Concat(Txn.application_args[1], Txn.application_args[1]),
        ),
        App.globalPut(next_id_key, new_id.load() + Int(1)),

        Log(Concat(
            Bytes("BOUND"),
            Itob(new_id.load()),
            Txn.application_args[1],
        )),

        Approve(),
    ])

    # ========== unbind(token_key) ==========
    # arg[1] = itob(token_id)
    unbind_record = App.box_get(Txn.application_args[1])
    on_unbind = Seq([
        Assert(is_admin),
        Assert(Txn.application_args.length() == Int(2)),
        Assert(Len(Txn.application_args[1]) == Int(BOX_KEY_BYTES)),

        unbind_record,
        Assert(unbind_record.hasValue()),   # token exists
        Assert(_owner(unbind_record.value()) == _bound_to(unbind_record.value())),

        App.box_replace(Txn.application_args[1], Int(32), Global.zero_address()),

        Log(Concat(Bytes("UNBOUND"), Txn.application_args[1])),

        Approve(),
    ])

    # ========== is_bound(token_key, address) ==========
    # arg[1] = itob(token_id)
    # arg[2] = address (32 bytes)
    is_bound_record = App.box_get(Txn.application_args[1])
    on_is_bound = Seq([
        Assert(Txn.application_args.length() == Int(3)),

        is_bound_record,
        If(
            is_bound_record.hasValue(),
            If(
                And(
                    _is_address(Txn.application_args[2]),
                    _bound_to(is_bound_record.value()) == Txn.application_args[2],
                ),
                Approve(),
                Reject(),
            ),
            Reject(),
        ),
    ])

    # ========== transfer(token_key, to) ==========
    # arg[1] = itob(token_id)
    # arg[2] = recipient address (32 bytes)
    transfer_record = App.box_get(Txn.application_args[1])
    on_transfer = Seq([
        Assert(Txn.application_args.length() == Int(3)),
        Assert(_is_address(Txn.application_args[2])),

        transfer_record,
        Assert(transfer_record.hasValue()),

        # Soulbound guard: never move a token bound to its sender
        Assert(_bound_to(transfer_record.value()) != Txn.sender()),
        Assert(_owner(transfer_record.value()) == Txn.sender()),

        App.box_replace(Txn.application_args[1], Int(0), Txn.application_args[2]),

        Log(Concat(
            Bytes("TRANSFER"),
            Txn.application_args[1],
            Txn.sender(),
            Txn.application_args[2],
        )),

        Approve(),
    ])

    # ========== transfer_admin(new_admin) ==========
    # arg[1] = new admin address (32 bytes)
    on_transfer_admin = Seq([
        Assert(is_admin),
        Assert(Txn.application_args.length() == Int(2)),
        Assert(_is_address(Txn.application_args[1])),
        App.globalPut(admin_key, Txn.application_args[1]),
        Approve(),
    ])

    # ========== Router ==========
    method_selector = Txn.application_args[0]

    program = Cond(
        [Txn.application_id() == Int(0), on_creation],
        [Txn.on_completion() == OnComplete.DeleteApplication, Return(is_admin)],
        [Txn.on_completion() == OnComplete.UpdateApplication, Return(is_admin)],
        # No local state: nothing to opt into
        [Txn.on_completion() == OnComplete.OptIn, Reject()],
        [Txn.on_completion() == OnComplete.CloseOut, Approve()],
        [Txn.on_completion() == OnComplete.NoOp, Cond(
            [method_selector == Bytes("mint"), on_mint],
            [method_selector == Bytes("unbind"), on_unbind],
            [method_selector == Bytes("is_bound"), on_is_bound],
            [method_selector == Bytes("transfer"), on_transfer],
            [method_selector == Bytes("transfer_admin"), on_transfer_admin],
        )],
    )

    return program


def clear_program():
    """Clear state program — always approves."""
    return Approve()


if __name__ == "__main__":
    print("=== SoulboundRegistry Approval Program ===")
    print(compileTeal(approval_program(), mode=Mode.Application, version=8))
    print("\n=== SoulboundRegistry Clear State Program ===")
    print(compileTeal(clear_program(), mode=Mode.Application, version=8))
