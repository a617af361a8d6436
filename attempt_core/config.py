from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# seconds; edges of the four time buckets
TIME_BUCKET_BOUNDS: tuple[float, float, float] = (30.0, 60.0, 120.0)
TIME_BUCKET_KEYS: tuple[str, str, str, str] = (
    "lessThan30Sec",
    "between30To60Sec",
    "between1To2Min",
    "moreThan2Min",
)

TIME_DRIFT_TOLERANCE_SEC: float = 2.0
STRICT_TIME_CONSISTENCY: bool = False

DEFAULT_MARKING_SCHEME: dict[str, float] = {"correct": 1.0, "incorrect": 0.0, "unattempted": 0.0}

UNKNOWN_BUCKET: str = "unknown"

QUICK_ANSWER_SEC: float = 30.0
LONG_DELIBERATION_SEC: float = 120.0
MULTI_REVISION_MIN: int = 2

NAV_EXPORT_ENABLED: bool = True

DEFAULT_ENVIRONMENT: dict[str, object] = {
    "device": {"userAgent": "", "screenResolution": "", "deviceType": "desktop"},
    "session": {"tabSwitches": 0, "disconnections": [], "browserRefreshes": 0},
}

# env overrides (ops/staging)
TIME_DRIFT_TOLERANCE_SEC = _env_float("TIME_DRIFT_TOLERANCE_SEC", TIME_DRIFT_TOLERANCE_SEC)
STRICT_TIME_CONSISTENCY = _env_bool("STRICT_TIME_CONSISTENCY", STRICT_TIME_CONSISTENCY)
MULTI_REVISION_MIN = _env_int("MULTI_REVISION_MIN", MULTI_REVISION_MIN)
NAV_EXPORT_ENABLED = _env_bool("NAV_EXPORT_ENABLED", NAV_EXPORT_ENABLED)


def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    scheme = dict(DEFAULT_MARKING_SCHEME)
    scheme.update(cfg.get("MARKING_SCHEME") or {})
    for key in ("correct", "incorrect", "unattempted"):
        env_name = f"MARKING_{key.upper()}"
        if os.getenv(env_name):
            scheme[key] = _env_float(env_name, scheme[key])
    cfg["MARKING_SCHEME"] = scheme
    return cfg


def default_marking_scheme():
    from .types import MarkingScheme
    return MarkingScheme.from_mapping(load_config()["MARKING_SCHEME"])
