import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from matchcatalog.normalization.reconciler import ReconcileResult
from matchcatalog.utils.time_utils import format_update_time

TEMP_SUFFIX = ".tmp"


class SnapshotError(Exception):
    """Raised when a snapshot is empty or fails validation before publishing."""

    pass


def build_snapshot(
    result: ReconcileResult,
    reference_now: datetime,
    provenance: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Assembles the published document from a reconciliation result."""
    return {
        "success": result.total > 0,
        "updateTime": format_update_time(reference_now),
        "total": result.total,
        "categoryCounts": dict(sorted(result.by_category.items(), key=lambda kv: int(kv[0]))),
        "sourceCounts": dict(result.by_source),
        "sources": list(provenance or []),
        "data": [match.to_record() for match in result.matches],
    }


def validate_snapshot(snapshot: Any) -> None:
    if not isinstance(snapshot, dict):
        raise SnapshotError(f"Snapshot must be a mapping, got {type(snapshot)}")
    if not snapshot.get("success"):
        raise SnapshotError("Snapshot is not marked successful")
    data = snapshot.get("data")
    if not isinstance(data, list) or not data:
        raise SnapshotError("Snapshot contains no matches")


def write_snapshot(snapshot: Dict[str, Any], path: Union[str, os.PathLike]) -> Path:
    """Atomically publishes `snapshot` at `path`.

    The document is written to a temporary file beside the target, read back
    and validated, then renamed over the target. On any failure the temporary
    file is removed and the previously published snapshot is left untouched.
    """
    validate_snapshot(snapshot)

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path = target.with_name(target.name + TEMP_SUFFIX)

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, ensure_ascii=False)
        with open(temp_path, "r", encoding="utf-8") as f:
            validate_snapshot(json.load(f))
        os.replace(temp_path, target)
    except (OSError, TypeError, ValueError, SnapshotError) as e:
        logger.error(f"Snapshot not published to {target}: {e}")
        temp_path.unlink(missing_ok=True)
        if isinstance(e, SnapshotError):
            raise
        raise SnapshotError(f"Failed to write snapshot to {target}: {e}") from e

    logger.success(f"Published {len(snapshot['data'])} matches to {target}")
    return target
