"""
Reconcile cached wallet balances with the ledger.

Prints the agents whose cached balance has drifted, then (unless --dry-run)
recomputes and rewrites the cached balance of every agent with ledger entries.
"""
import argparse
import asyncio

from wallet_ledger.core.config import get_settings
from wallet_ledger.core.container import get_container
from wallet_ledger.core.logging_config import configure_logging
from wallet_ledger.infrastructure.database import init_db


async def reconcile(dry_run: bool, limit: int) -> int:
    await init_db()
    wallets = get_container().wallets

    discrepancies = await wallets.discrepancy_report(limit=limit)
    if not discrepancies:
        print("[check] all cached balances match the ledger")
    for item in discrepancies:
        print(
            f"[drift] {item.agent_id} ({item.agent_name or '-'}): "
            f"cached={item.cached_balance} ledger={item.calculated_balance} diff={item.difference}"
        )

    if dry_run:
        return 0

    result = await wallets.reconcile_all()
    print(
        f"[sync] {result.succeeded}/{result.total} agents synchronized, "
        f"{result.failed} failed, total difference {result.total_difference}"
    )
    for agent_id, error in result.errors.items():
        print(f"[error] {agent_id}: {error}")
    return 1 if result.failed else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Reconcile cached wallet balances with the ledger")
    parser.add_argument("--dry-run", action="store_true", help="only report drifted balances")
    parser.add_argument("--limit", type=int, default=10, help="number of drifted agents to list")
    args = parser.parse_args()

    configure_logging(get_settings())
    raise SystemExit(asyncio.run(reconcile(args.dry_run, args.limit)))


if __name__ == "__main__":
    main()
