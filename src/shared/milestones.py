"""Milestone threshold ladder and the append-once milestone log.

A milestone is a one-time fact about a listener. Uniqueness is keyed per kind:

  listening_hours            PK=LISTENER#<id>  SK=MILESTONE#listening_hours#<hours>
  pwa_installed/first_signup PK=LISTENER#<id>  SK=MILESTONE#<kind>
  anything else              PK=LISTENER#<id>  SK=MILESTONE#<kind>#<event id>   (not unique)

System events without a listener use PK=SYSTEM. Every event carries
collection="MILESTONE" for the feed-index GSI.
"""

import logging
import uuid

from boto3.dynamodb.conditions import Key as DynamoKey
from botocore.exceptions import ClientError

from shared.db import (
    FEED_INDEX,
    MILESTONE_COLLECTION,
    STORE_ERRORS,
    get_radio_table,
    is_condition_failure,
    listener_pk,
    now_iso,
    plain,
    store_failure,
    to_dynamo,
)

logger = logging.getLogger(__name__)

LISTENING_HOURS = "listening_hours"
PWA_INSTALLED = "pwa_installed"
FIRST_SIGNUP = "first_signup"

HOUR_THRESHOLDS = (1, 5, 10, 25, 50, 100, 250, 500)

POLICY_LOWEST = "lowest"
POLICY_ALL = "all"

PARAMETERIZED_KINDS = {LISTENING_HOURS}
ONE_TIME_KINDS = {PWA_INSTALLED, FIRST_SIGNUP}

DEFAULT_NICKNAME = "משתמש"

SYSTEM_PK = "SYSTEM"


def crossed_thresholds(before_seconds: int, after_seconds: int, policy: str = POLICY_LOWEST) -> list[int]:
    """Hour thresholds t with before_hours < t <= after_hours.

    "lowest" returns at most the first one, "all" returns every one crossed.
    """
    if policy not in (POLICY_LOWEST, POLICY_ALL):
        raise ValueError(f"Unknown milestone policy: {policy!r}. Must be 'lowest' or 'all'.")

    before_hours = before_seconds // 3600
    after_hours = after_seconds // 3600
    crossed = [t for t in HOUR_THRESHOLDS if before_hours < t <= after_hours]
    if policy == POLICY_LOWEST:
        return crossed[:1]
    return crossed


def passed_thresholds(total_seconds: int) -> list[int]:
    hours = total_seconds // 3600
    return [t for t in HOUR_THRESHOLDS if hours >= t]


def milestone_sk(kind: str, value: int | None = None, event_id: str | None = None) -> str:
    if kind in PARAMETERIZED_KINDS:
        if value is None:
            raise ValueError(f"Milestone kind {kind!r} requires a value")
        return f"MILESTONE#{kind}#{value}"
    if kind in ONE_TIME_KINDS:
        return f"MILESTONE#{kind}"
    return f"MILESTONE#{kind}#{event_id or uuid.uuid4().hex}"


def _pk(listener_id: str | None) -> str:
    return listener_pk(listener_id) if listener_id else SYSTEM_PK


def _event(item: dict) -> dict:
    item = plain(item)
    return {
        "id": item["id"],
        "listenerId": item.get("listenerId"),
        "nickname": item.get("nickname"),
        "avatarUrl": item.get("avatarUrl"),
        "kind": item["kind"],
        "value": item.get("value"),
        "metadata": item.get("metadata", {}),
        "createdAt": item["createdAt"],
    }


def record_milestone(
    listener_id: str | None,
    nickname: str | None,
    avatar_url: str | None,
    kind: str,
    value: int | None = None,
    metadata: dict | None = None,
) -> tuple[dict, bool]:
    """
    Append a milestone event. Returns (event, created).

    The caller has already decided the milestone was reached; this only
    guarantees the per-kind uniqueness. A losing writer in a duplicate race gets
    the stored event back with created=False.
    """
    table = get_radio_table()
    event_id = uuid.uuid4().hex
    key = {"PK": _pk(listener_id), "SK": milestone_sk(kind, value, event_id)}

    item: dict = {
        **key,
        "collection": MILESTONE_COLLECTION,
        "id": event_id,
        "kind": kind,
        "nickname": nickname or (DEFAULT_NICKNAME if listener_id else None),
        "avatarUrl": avatar_url,
        "metadata": to_dynamo(metadata or {}),
        "createdAt": now_iso(),
    }
    if listener_id:
        item["listenerId"] = listener_id
    if value is not None:
        item["value"] = value
    if kind == LISTENING_HOURS and "hours" not in item["metadata"]:
        item["metadata"] = {**item["metadata"], "hours": value}
    item = {k: v for k, v in item.items() if v is not None}

    try:
        table.put_item(Item=item, ConditionExpression="attribute_not_exists(PK)")
    except ClientError as exc:
        if not is_condition_failure(exc):
            raise store_failure(exc, "put milestone") from exc
        logger.debug("Milestone %s already recorded for %s", key["SK"], key["PK"])
        try:
            existing = table.get_item(Key=key, ConsistentRead=True).get("Item")
        except STORE_ERRORS as exc:
            raise store_failure(exc, "get milestone") from exc
        return _event(existing or item), False
    except STORE_ERRORS as exc:
        raise store_failure(exc, "put milestone") from exc

    logger.info("Recorded milestone %s for %s", key["SK"], key["PK"])
    return _event(item), True


def record_listening_milestone(
    listener_id: str,
    nickname: str | None,
    avatar_url: str | None,
    threshold_hours: int,
) -> dict:
    event, _ = record_milestone(listener_id, nickname, avatar_url, LISTENING_HOURS, value=threshold_hours)
    return event


def exists_milestone(listener_id: str, kind: str, value: int | None = None) -> bool:
    """Only meaningful for unique kinds (parameterized or one-time)."""
    if kind not in PARAMETERIZED_KINDS and kind not in ONE_TIME_KINDS:
        raise ValueError(f"Milestone kind {kind!r} is not unique per listener")
    try:
        item = get_radio_table().get_item(
            Key={"PK": listener_pk(listener_id), "SK": milestone_sk(kind, value)},
            ConsistentRead=True,
        ).get("Item")
    except STORE_ERRORS as exc:
        raise store_failure(exc, "get milestone") from exc
    return item is not None


def list_milestones(since: str | None = None, limit: int = 30) -> list[dict]:
    """Milestone events newest first, optionally only those created after ``since``."""
    condition = DynamoKey("collection").eq(MILESTONE_COLLECTION)
    if since:
        condition = condition & DynamoKey("createdAt").gt(since)

    try:
        response = get_radio_table().query(
            IndexName=FEED_INDEX,
            KeyConditionExpression=condition,
            ScanIndexForward=False,
            Limit=limit,
        )
    except STORE_ERRORS as exc:
        raise store_failure(exc, "query milestones") from exc
    return [_event(item) for item in response.get("Items", [])]


def listener_milestone_keys(listener_id: str) -> list[dict]:
    """Keys of every milestone item stored under a listener."""
    try:
        response = get_radio_table().query(
            KeyConditionExpression=DynamoKey("PK").eq(listener_pk(listener_id))
            & DynamoKey("SK").begins_with("MILESTONE#"),
            ProjectionExpression="PK, SK",
        )
    except STORE_ERRORS as exc:
        raise store_failure(exc, "query listener milestones") from exc
    return [{"PK": item["PK"], "SK": item["SK"]} for item in response.get("Items", [])]
