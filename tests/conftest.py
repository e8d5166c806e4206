"""
Fixtures shared across the stratum test suite.

The cluster-shaped tree here backs the inheritance and builder tests.
"""

import typing as _typing

import pytest as _pytest

import stratum
import stratum.collectors as collectors

# STRATUM_* settings that would leak into collector defaults
ENV_KEYS_TO_CLEAR = [
    "STRATUM_ENV_PREFIX",
    "STRATUM_ENV_DELIMITER",
    "STRATUM_YAML_KEEP_ORDER",
    "STRATUM_FILE_ENCODING",
]


@_pytest.fixture(autouse=True)
def clean_env(monkeypatch: _pytest.MonkeyPatch) -> None:
    """Keep package settings independent of the developer's environment."""
    for key in ENV_KEYS_TO_CLEAR:
        monkeypatch.delenv(key, raising=False)


# =============================================================================
# Inheritance fixtures
# =============================================================================


@_pytest.fixture
def hierarchy_data() -> dict[str, _typing.Any]:
    """
    A cluster layout with values at every level.

    global -> groups/storages -> replicasets/s-001 -> instances/s-001-a, s-001-b
    """
    return {
        "replication": {"failover": "manual", "timeout": 10},
        "roles": ["storage"],
        "snapshot": {"dir": "/var/lib/snap", "count": 3},
        "groups": {
            "storages": {
                "replication": {"failover": "election"},
                "roles": ["metrics"],
                "leader": "s-001-a",
                "replicasets": {
                    "s-001": {
                        "snapshot": {"dir": "/data/s-001"},
                        "roles": ["cache"],
                        "instances": {
                            "s-001-a": {"iproto": {"listen": "127.0.0.1:3301"}},
                            "s-001-b": {"iproto": {"listen": "127.0.0.1:3302"}},
                        },
                    },
                },
            },
        },
    }


@_pytest.fixture
def hierarchy_levels() -> tuple[str, ...]:
    return stratum.levels(stratum.GLOBAL, "groups", "replicasets", "instances")


@_pytest.fixture
def hierarchy_builder(hierarchy_data: dict[str, _typing.Any]) -> stratum.Builder:
    """Builder with hierarchy_data as its only collector; no hierarchy registered yet."""
    return stratum.Builder().add_collector(collectors.MapCollector(hierarchy_data))


@_pytest.fixture
def instance_path() -> str:
    return "groups/storages/replicasets/s-001/instances/s-001-a"
