# app/db/user_voucher_dedup.py
"""
Restore the one-row-per-(user, voucher) invariant on user_vouchers.

Older data stored a row per redemption with an `is_used` flag. This routine
moves it to the counter model:

1. add `usage_count` (default 0) where the column is missing
2. backfill `usage_count` from `is_used` rows: the voucher's per-user limit,
   or 1 when the voucher has none
3. merge duplicate (user_id, voucher_id) rows into the earliest one, summing
   their usage counts
4. create the unique index on (user_id, voucher_id)

Each step is a no-op when already applied, so the routine can be re-run.
"""

import logging
from dataclasses import dataclass
from itertools import groupby

import sqlalchemy as sa
from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)

TABLE_NAME = "user_vouchers"
UNIQUE_INDEX_NAME = "uq_user_vouchers_user_voucher"


@dataclass
class DedupReport:
    added_usage_count: bool = False
    backfilled: int = 0
    merged_groups: int = 0
    removed_rows: int = 0
    created_unique_index: bool = False


def _columns(connection: Connection, table: str) -> set:
    return {col["name"] for col in sa.inspect(connection).get_columns(table)}


def _has_unique_index(connection: Connection) -> bool:
    inspector = sa.inspect(connection)
    wanted = ["user_id", "voucher_id"]
    for index in inspector.get_indexes(TABLE_NAME):
        if index.get("unique") and index["column_names"] == wanted:
            return True
    for constraint in inspector.get_unique_constraints(TABLE_NAME):
        if constraint["column_names"] == wanted:
            return True
    return False


def merge_duplicate_user_vouchers(connection: Connection) -> DedupReport:
    """Run all four steps on an open connection. The caller owns the transaction."""
    report = DedupReport()

    if "usage_count" not in _columns(connection, TABLE_NAME):
        connection.execute(
            sa.text(
                f"ALTER TABLE {TABLE_NAME} "
                "ADD COLUMN usage_count INTEGER NOT NULL DEFAULT 0"
            )
        )
        report.added_usage_count = True
        logger.info("Added usage_count column to user_vouchers")

    metadata = sa.MetaData()
    user_vouchers = sa.Table(TABLE_NAME, metadata, autoload_with=connection)
    vouchers = sa.Table("vouchers", metadata, autoload_with=connection)

    if "is_used" in user_vouchers.c:
        per_user_limit = (
            sa.select(
                sa.func.coalesce(sa.func.nullif(vouchers.c.per_user_limit, 0), 1)
            )
            .where(vouchers.c.id == user_vouchers.c.voucher_id)
            .scalar_subquery()
        )
        result = connection.execute(
            user_vouchers.update()
            .where(
                user_vouchers.c.is_used == sa.true(),
                user_vouchers.c.usage_count == 0,
                sa.exists().where(vouchers.c.id == user_vouchers.c.voucher_id),
            )
            .values(usage_count=per_user_limit)
        )
        report.backfilled = result.rowcount or 0
        logger.info(f"Backfilled usage_count on {report.backfilled} used vouchers")

    order_by = [user_vouchers.c.user_id, user_vouchers.c.voucher_id]
    if "saved_at" in user_vouchers.c:
        order_by.append(user_vouchers.c.saved_at)
    order_by.append(user_vouchers.c.id)

    rows = connection.execute(
        sa.select(
            user_vouchers.c.id,
            user_vouchers.c.user_id,
            user_vouchers.c.voucher_id,
            user_vouchers.c.usage_count,
        ).order_by(*order_by)
    ).all()

    for (user_id, voucher_id), group in groupby(rows, key=lambda r: (r.user_id, r.voucher_id)):
        group = list(group)
        if len(group) < 2:
            continue
        keeper, duplicates = group[0], group[1:]
        total = sum(row.usage_count or 0 for row in group)
        connection.execute(
            user_vouchers.update()
            .where(user_vouchers.c.id == keeper.id)
            .values(usage_count=total)
        )
        connection.execute(
            user_vouchers.delete().where(
                user_vouchers.c.id.in_([row.id for row in duplicates])
            )
        )
        report.merged_groups += 1
        report.removed_rows += len(duplicates)
        logger.info(
            f"Merged {len(group)} user_vouchers rows for user {user_id} "
            f"voucher {voucher_id} (usage_count={total})"
        )

    if not _has_unique_index(connection):
        sa.Index(
            UNIQUE_INDEX_NAME,
            user_vouchers.c.user_id,
            user_vouchers.c.voucher_id,
            unique=True,
        ).create(connection)
        report.created_unique_index = True
        logger.info(f"Created unique index {UNIQUE_INDEX_NAME}")

    logger.info(f"user_vouchers dedup finished: {report}")
    return report
