"""
Toggle Example

Run: uv run python -m examples.toggle_example
"""

from kungfu import Ok, Error

from graphtxn import entity as E
from graphtxn import workflow as W

from examples._infra import banner, run, seeded_gateway


async def main() -> None:
    gateway = await seeded_gateway()
    request = W.ToggleRequest(terms="Vikram Mali", balance=26)

    # 1. Alternation: create, delete, create
    banner("Toggle three times")
    for i in range(3):
        match await W.toggle(gateway, request):
            case Ok(outcome):
                print(f"  {i + 1}. {outcome.action.name:6} → {outcome.confirmation.total} match(es)")
            case Error(e):
                print(f"  {i + 1}. ✗ {e}")

    # 2. Conflict: another writer commits between our query and our commit
    banner("Concurrent writer")
    async with W.Transaction(gateway.begin_transaction()) as txn:
        found = await txn.query(request.query)
        if isinstance(found, Error):
            print(f"  ✗ {found.value}")
            return
        target = found.value.first
        print(f"  We see: {target}")

        if target is not None:
            other = gateway.begin_transaction()
            await other.mutate(E.delete_payload(target.uid))
            await other.commit()
            print(f"  Other writer deleted {target.uid}")

        decided = await txn.decide(found.value, request)
        if isinstance(decided, Error):
            print(f"  ✗ {decided.value}")
            return
        await txn.mutate(decided.value.payload)
        match await txn.commit():
            case Ok(_):
                print("  ✓ Committed")
            case Error(e):
                print(f"  ✗ {e} → state {txn.state.name}")


if __name__ == "__main__":
    run(main)
