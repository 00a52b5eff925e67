"""Listener accounts: cumulative listening time, profile and leaderboard.

totalSeconds is only ever changed by the store itself:
  - ADD totalSeconds :delta  (server-side atomic add, untokened reports)
  - a conditional transaction  (compare-and-set, tokened reports)
  - SET totalSeconds = 0       (administrative reset)
Never by reading the total, adding in Python and writing it back unconditionally.
"""

import logging
from dataclasses import dataclass, field

from boto3.dynamodb.conditions import Attr, Key as DynamoKey
from botocore.exceptions import ClientError

from shared.config import MAX_CAS_ATTEMPTS, REPORT_TOKEN_TTL_SECONDS
from shared.db import (
    LEADERBOARD_INDEX,
    LISTENER_COLLECTION,
    NICKNAME_INDEX,
    STORE_ERRORS,
    build_update_expression,
    epoch_seconds,
    get_radio_table,
    is_condition_failure,
    is_transaction_cancelled,
    listener_pk,
    now_iso,
    plain,
    report_pk,
    store_failure,
)
from shared.errors import InvalidReportError, StoreUnavailableError

logger = logging.getLogger(__name__)

PROFILE_SK = "PROFILE"
TOKEN_SK = "TOKEN"


@dataclass
class IncrementResult:
    before: int
    after: int
    listener: dict = field(default_factory=dict)  # listener item, for nickname/avatar snapshots
    duplicate: bool = False


def _key(listener_id: str) -> dict:
    return {"PK": listener_pk(listener_id), "SK": PROFILE_SK}


def get_listener(listener_id: str) -> dict | None:
    try:
        item = get_radio_table().get_item(Key=_key(listener_id), ConsistentRead=True).get("Item")
    except STORE_ERRORS as exc:
        raise store_failure(exc, "get listener") from exc
    return plain(item)


def get_total(listener_id: str) -> int:
    item = get_listener(listener_id)
    if not item:
        return 0
    return int(item.get("totalSeconds", 0))


def atomic_increment(listener_id: str, delta: int, report_id: str | None = None) -> IncrementResult:
    """
    Add ``delta`` seconds to the listener's total, creating the listener if needed.

    Without a report_id this is one UpdateItem with ADD, and the prior total is
    derived from the value it returns. With a report_id the increment and the
    token are written in one transaction, so a resent report is applied once.
    """
    if report_id:
        return _increment_once(listener_id, delta, report_id)

    ts = now_iso()
    expr, names, values = build_update_expression(
        {
            "collection": LISTENER_COLLECTION,
            "listenerId": listener_id,
            "lastSeen": ts,
            "updatedAt": ts,
        },
        add={"totalSeconds": delta},
        if_missing={"createdAt": ts},
    )
    try:
        response = get_radio_table().update_item(
            Key=_key(listener_id),
            UpdateExpression=expr,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
    except STORE_ERRORS as exc:
        raise store_failure(exc, "increment listening time") from exc

    item = plain(response["Attributes"])
    after = int(item["totalSeconds"])
    return IncrementResult(before=after - delta, after=after, listener=item)


def _increment_once(listener_id: str, delta: int, report_id: str) -> IncrementResult:
    table = get_radio_table()
    key = _key(listener_id)
    token_key = {"PK": report_pk(listener_id, report_id), "SK": TOKEN_SK}

    for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
        try:
            current = plain(table.get_item(Key=key, ConsistentRead=True).get("Item")) or {}
        except STORE_ERRORS as exc:
            raise store_failure(exc, "get listener") from exc

        has_total = "totalSeconds" in current
        before = int(current["totalSeconds"]) if has_total else 0
        after = before + delta
        ts = now_iso()

        expr, names, values = build_update_expression(
            {
                "collection": LISTENER_COLLECTION,
                "listenerId": listener_id,
                "totalSeconds": after,
                "lastSeen": ts,
                "updatedAt": ts,
            },
            if_missing={"createdAt": ts},
        )
        names["#total"] = "totalSeconds"
        if has_total:
            condition = "#total = :before"
            values[":before"] = before
        else:
            condition = "attribute_not_exists(#total)"

        token_item = {
            **token_key,
            "listenerId": listener_id,
            "seconds": delta,
            "before": before,
            "after": after,
            "createdAt": ts,
            "expiresAt": epoch_seconds() + REPORT_TOKEN_TTL_SECONDS,
        }

        try:
            table.meta.client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": table.name,
                            "Item": token_item,
                            "ConditionExpression": "attribute_not_exists(PK)",
                        }
                    },
                    {
                        "Update": {
                            "TableName": table.name,
                            "Key": key,
                            "UpdateExpression": expr,
                            "ConditionExpression": condition,
                            "ExpressionAttributeNames": names,
                            "ExpressionAttributeValues": values,
                        }
                    },
                ]
            )
        except ClientError as exc:
            if not is_transaction_cancelled(exc):
                raise store_failure(exc, "increment listening time") from exc
        except STORE_ERRORS as exc:
            raise store_failure(exc, "increment listening time") from exc
        else:
            return IncrementResult(before=before, after=after, listener={**current, "totalSeconds": after})

        # Cancelled: either the token was already applied or the total moved underneath us.
        try:
            token = plain(table.get_item(Key=token_key, ConsistentRead=True).get("Item"))
        except STORE_ERRORS as exc:
            raise store_failure(exc, "get report token") from exc
        if token and token["listenerId"] != listener_id:
            raise InvalidReportError(f"report_id {report_id!r} does not belong to {listener_id!r}")
        if token:
            logger.info("Report %s already applied for %s", report_id, listener_id)
            return IncrementResult(
                before=int(token["before"]),
                after=int(token["after"]),
                listener=current,
                duplicate=True,
            )
        logger.debug("Total for %s changed concurrently (attempt %d), retrying", listener_id, attempt)

    logger.error("Gave up incrementing %s after %d attempts", listener_id, MAX_CAS_ATTEMPTS)
    raise StoreUnavailableError(f"increment for {listener_id!r} kept conflicting, retry later")


def nickname_owner(nickname: str) -> str | None:
    # Milestone snapshots also carry a nickname, only the profile item counts.
    # The filter runs after each page is read, so keep paging until a profile turns up.
    table = get_radio_table()
    kwargs: dict = {
        "IndexName": NICKNAME_INDEX,
        "KeyConditionExpression": DynamoKey("nickname").eq(nickname),
        "FilterExpression": Attr("SK").eq(PROFILE_SK),
    }
    while True:
        try:
            response = table.query(**kwargs)
        except STORE_ERRORS as exc:
            raise store_failure(exc, "query nickname") from exc
        items = response.get("Items", [])
        if items:
            return items[0]["listenerId"]
        if "LastEvaluatedKey" not in response:
            return None
        kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]


def upsert_profile(
    listener_id: str,
    email: str,
    nickname: str,
    avatar_url: str | None,
) -> tuple[dict, bool]:
    """Create or update the profile fields. Returns (listener, first_registration)."""
    existing = get_listener(listener_id)
    ts = now_iso()

    expr, names, values = build_update_expression(
        {
            "collection": LISTENER_COLLECTION,
            "listenerId": listener_id,
            "email": email,
            "nickname": nickname,
            "avatarUrl": avatar_url,
            "lastSeen": ts,
            "updatedAt": ts,
        },
        if_missing={"createdAt": ts},
    )
    try:
        response = get_radio_table().update_item(
            Key=_key(listener_id),
            UpdateExpression=expr,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
    except STORE_ERRORS as exc:
        raise store_failure(exc, "upsert listener") from exc

    first_registration = not existing or not existing.get("nickname")
    return plain(response["Attributes"]), first_registration


def leaderboard(limit: int = 10) -> list[dict]:
    try:
        response = get_radio_table().query(
            IndexName=LEADERBOARD_INDEX,
            KeyConditionExpression=DynamoKey("collection").eq(LISTENER_COLLECTION),
            ScanIndexForward=False,
            Limit=limit,
        )
    except STORE_ERRORS as exc:
        raise store_failure(exc, "query leaderboard") from exc

    return [
        {
            "listenerId": item["listenerId"],
            "nickname": item.get("nickname"),
            "avatarUrl": item.get("avatarUrl"),
            "totalSeconds": item["totalSeconds"],
        }
        for item in map(plain, response.get("Items", []))
    ]


def iter_listeners():
    """Yield every listener that has accrued listening time."""
    table = get_radio_table()
    kwargs: dict = {
        "IndexName": LEADERBOARD_INDEX,
        "KeyConditionExpression": DynamoKey("collection").eq(LISTENER_COLLECTION),
    }
    while True:
        try:
            response = table.query(**kwargs)
        except STORE_ERRORS as exc:
            raise store_failure(exc, "query listeners") from exc
        for item in response.get("Items", []):
            yield plain(item)
        if "LastEvaluatedKey" not in response:
            return
        kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]


def reset_total(listener_id: str) -> dict | None:
    """Administrative reset of totalSeconds to 0. Returns None for unknown listeners."""
    ts = now_iso()
    expr, names, values = build_update_expression({"totalSeconds": 0, "updatedAt": ts})
    try:
        response = get_radio_table().update_item(
            Key=_key(listener_id),
            UpdateExpression=expr,
            ConditionExpression="attribute_exists(PK)",
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
    except ClientError as exc:
        if is_condition_failure(exc):
            return None
        raise store_failure(exc, "reset listener") from exc
    except STORE_ERRORS as exc:
        raise store_failure(exc, "reset listener") from exc

    logger.info("Reset listening time for %s", listener_id)
    return plain(response["Attributes"])


def delete_listener(listener_id: str, milestone_keys: list[dict]) -> bool:
    """Delete the profile item and the given milestone items. False if unknown."""
    if get_listener(listener_id) is None:
        return False

    try:
        with get_radio_table().batch_writer() as batch:
            batch.delete_item(Key=_key(listener_id))
            for key in milestone_keys:
                batch.delete_item(Key=key)
    except STORE_ERRORS as exc:
        raise store_failure(exc, "delete listener") from exc

    logger.info("Deleted listener %s and %d milestones", listener_id, len(milestone_keys))
    return True
