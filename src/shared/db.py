"""DynamoDB resource helpers, key builders and update expression builder.

Single-table key design (table: DYNAMODB_RADIO_TABLE):
  Listener:     PK=LISTENER#<id>  SK=PROFILE
  Milestone:    PK=LISTENER#<id>  SK=MILESTONE#<kind>[#<value>|#<event id>]
  Report token: PK=REPORT#<listener id>#<report id>  SK=TOKEN

GSIs (all sparse):
  leaderboard-index  collection (HASH) + totalSeconds (RANGE)   listeners only
  feed-index         collection (HASH) + createdAt (RANGE)      collection="MILESTONE"
  nickname-index     nickname (HASH)
"""

import json
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shared.config import AWS_REGION, DYNAMODB_KWARGS, RADIO_TABLE
from shared.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

LEADERBOARD_INDEX = "leaderboard-index"
FEED_INDEX = "feed-index"
NICKNAME_INDEX = "nickname-index"

LISTENER_COLLECTION = "LISTENER"
MILESTONE_COLLECTION = "MILESTONE"


def _dynamodb():
    return boto3.resource("dynamodb", region_name=AWS_REGION, **DYNAMODB_KWARGS)


def get_radio_table():
    return _dynamodb().Table(RADIO_TABLE)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def epoch_seconds() -> int:
    return int(time.time())


def listener_pk(listener_id: str) -> str:
    return f"LISTENER#{listener_id}"


def report_pk(listener_id: str, report_id: str) -> str:
    # Report ids come from clients and only have to be unique per listener
    return f"REPORT#{listener_id}#{report_id}"


def is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def is_transaction_cancelled(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "TransactionCanceledException"


def store_failure(exc: Exception, action: str) -> StoreUnavailableError:
    """Log a storage error and wrap it as a transient failure for the caller."""
    logger.error("DynamoDB %s failed: %s", action, exc)
    return StoreUnavailableError(f"{action} failed: {exc}")


# Errors that mean the store could not complete a request
STORE_ERRORS = (ClientError, BotoCoreError)


def plain(item: dict | None) -> dict | None:
    """Convert DynamoDB Decimals to int/float so items serialize as JSON."""
    if item is None:
        return None
    return {key: _plain_value(value) for key, value in item.items()}


def _plain_value(value):
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return plain(value)
    if isinstance(value, list):
        return [_plain_value(v) for v in value]
    return value


def to_dynamo(value):
    """Floats are not accepted by the DynamoDB resource; store them as Decimal."""
    return json.loads(json.dumps(value), parse_float=Decimal)


def build_update_expression(
    data: dict,
    add: dict | None = None,
    if_missing: dict | None = None,
) -> tuple[str, dict, dict]:
    """
    Build a DynamoDB SET (and optional ADD) expression from flat dicts of {field: value}.

    Fields in ``if_missing`` are only written when the attribute does not exist yet
    (e.g. createdAt).

    Returns (UpdateExpression, ExpressionAttributeNames, ExpressionAttributeValues).

    All attribute names are aliased via ExpressionAttributeNames to avoid
    conflicts with DynamoDB reserved words (e.g. collection, status, date).
    """
    set_parts: list[str] = []
    add_parts: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, object] = {}

    for i, (key, value) in enumerate(data.items()):
        name_ph = f"#k{i}"
        val_ph = f":v{i}"
        set_parts.append(f"{name_ph} = {val_ph}")
        names[name_ph] = key
        values[val_ph] = value

    for i, (key, value) in enumerate((if_missing or {}).items()):
        name_ph = f"#m{i}"
        val_ph = f":m{i}"
        set_parts.append(f"{name_ph} = if_not_exists({name_ph}, {val_ph})")
        names[name_ph] = key
        values[val_ph] = value

    for i, (key, value) in enumerate((add or {}).items()):
        name_ph = f"#a{i}"
        val_ph = f":a{i}"
        add_parts.append(f"{name_ph} {val_ph}")
        names[name_ph] = key
        values[val_ph] = value

    clauses: list[str] = []
    if set_parts:
        clauses.append("SET " + ", ".join(set_parts))
    if add_parts:
        clauses.append("ADD " + ", ".join(add_parts))
    return " ".join(clauses), names, values
