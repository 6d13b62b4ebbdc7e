"""Shared fixtures: service identities, database parameters and plans."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

FIXTURES = Path(__file__).parent / "fixtures"

SERVICE_ID = "8d3c5a0e-1f2b-4c6d-9e7f-0a1b2c3d4e5f"
ENV_ID = "a1b2c3d4-0000-4000-8000-000000000001"
PROJECT_ID = "f0e1d2c3-0000-4000-8000-000000000002"


@pytest.fixture(autouse=True)
def _isolated_config_home(tmp_path, monkeypatch):
    """Keep render records and reports out of the real ~/.config."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in (
        "HELM_OVERLAYS_TEMPLATE_DIR",
        "HELM_OVERLAYS_OUTPUT_DIR",
        "HELM_OVERLAYS_STRICT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def identity() -> Dict[str, Any]:
    return {
        "long_id": SERVICE_ID,
        "name": "My Cache",
        "environment_long_id": ENV_ID,
        "project_long_id": PROJECT_ID,
        "namespace": "z-a1b2c3d4",
    }


@pytest.fixture()
def redis_params(identity) -> Dict[str, Any]:
    return {
        "identity": identity,
        "kind": "redis",
        "version": "7.2.4",
        "password": "s3cr3t",
        "port": 6379,
        "resources": {
            "cpu_request_in_milli": 250,
            "cpu_limit_in_milli": 500,
            "ram_request_in_mib": 256,
            "ram_limit_in_mib": 512,
        },
    }


@pytest.fixture()
def mongodb_params(redis_params) -> Dict[str, Any]:
    params = copy.deepcopy(redis_params)
    params.update(
        {
            "kind": "mongodb",
            "version": "6.0.12",
            "login": "admin",
            "port": 27017,
            "disk_size_in_gib": 20,
            "disk_type": "gp3",
        }
    )
    params["identity"]["name"] = "orders-db"
    return params


@pytest.fixture()
def service_params(identity) -> Dict[str, Any]:
    return {
        "identity": identity,
        "service": {
            "name": "Billing API",
            "long_id": SERVICE_ID,
            "type": "container",
        },
    }


@pytest.fixture()
def sample_plan() -> Dict[str, Any]:
    with open(FIXTURES / "plan.yaml", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


@pytest.fixture()
def plan_path(tmp_path, sample_plan) -> Path:
    dest = tmp_path / "plan.yaml"
    dest.write_text(yaml.safe_dump(sample_plan), encoding="utf-8")
    return dest


@pytest.fixture()
def write_plan(tmp_path):
    """Write a plan mapping to disk and return its path."""

    def _write(plan: Dict[str, Any], name: str = "custom-plan.yaml") -> Path:
        dest = tmp_path / name
        dest.write_text(yaml.safe_dump({"render_plan": plan}), encoding="utf-8")
        return dest

    return _write
