"""Load system_config.yml và ngân sách dispatch/worker. Path từ env PDF_SYSTEM_CONFIG, base từ PDF_CONFIG_BASE."""
from __future__ import annotations
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class DispatchPolicy(BaseModel):
    inline_page_threshold: int = Field(default=125, ge=1)
    checkpoint_every: int = Field(default=10, ge=1)


class WorkerBudget(BaseModel):
    max_wall_seconds: float = Field(default=130.0, gt=0)
    max_pages: int = Field(default=30, ge=1)
    lease_seconds: int = Field(default=30, ge=1)
    queue_name: str = "pdf_page_queue"


class Budgets(BaseModel):
    dispatch: DispatchPolicy = Field(default_factory=DispatchPolicy)
    worker: WorkerBudget = Field(default_factory=WorkerBudget)


# env var -> (section, key)
_ENV_OVERRIDES = {
    "INLINE_PAGE_THRESHOLD": ("dispatch", "inline_page_threshold"),
    "INLINE_CHECKPOINT_EVERY": ("dispatch", "checkpoint_every"),
    "WORKER_MAX_WALL_SECONDS": ("worker", "max_wall_seconds"),
    "WORKER_MAX_PAGES": ("worker", "max_pages"),
    "QUEUE_LEASE_SECONDS": ("worker", "lease_seconds"),
    "PAGE_QUEUE_NAME": ("worker", "queue_name"),
}


def _load_yaml(path: str) -> dict:
    import yaml
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_config(system_config: dict, keys: list[str]) -> Any:
    """Lấy giá trị lồng nhau: get_config(cfg, ["worker", "max_pages"]) -> cfg["worker"]["max_pages"]."""
    v = system_config
    for k in keys:
        v = v.get(k) if isinstance(v, dict) else None
        if v is None:
            return None
    return v


def load_system_config() -> tuple[dict, Path]:
    """
    Load infra/system_config.yml.
    - Path file: env PDF_SYSTEM_CONFIG, hoặc PDF_CONFIG_BASE/infra/system_config.yml, hoặc không có (trả về {}, Path('.')).
    Returns (config_dict, base_path).
    """
    config_path = os.getenv("PDF_SYSTEM_CONFIG", "").strip()
    base_env = os.getenv("PDF_CONFIG_BASE", "").strip()
    if not config_path and base_env:
        config_path = str(Path(base_env) / "infra" / "system_config.yml")
    if not config_path:
        return {}, Path(".")
    path = Path(config_path).resolve()
    if not path.is_file():
        return {}, path.parent
    cfg = _load_yaml(str(path))
    if base_env:
        base = Path(base_env).resolve()
    else:
        base = path.parent
        if path.parent.name == "infra":
            base = path.parent.parent
    return cfg, base


def load_budgets() -> Budgets:
    """Ngân sách từ yml (section dispatch/worker), env ghi đè từng key."""
    system_config, _ = load_system_config()
    raw: dict[str, dict] = {"dispatch": {}, "worker": {}}
    for section in raw:
        values = get_config(system_config, [section])
        if isinstance(values, dict):
            raw[section].update(values)
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name, "").strip()
        if value:
            raw[section][key] = value
    return Budgets.model_validate(raw)
