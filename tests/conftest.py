"""Fixtures shared across the specmatch test suite.

Spec fixtures come in three shapes: the raw JSON dicts, normalized
:class:`~specmatch.models.NormalizedSpec` objects, and a copy on disk that
a test may modify.  ``isolated_config`` points every config and cache lookup
at ``tmp_path``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from specmatch.models import NormalizedSpec
from specmatch.output import reset_output
from specmatch.parser import SpecNormalizer

FIXTURES_DIR = Path(__file__).parent / "fixtures"
PETSTORE = FIXTURES_DIR / "petstore_3.0.json"
USERS_SWAGGER = FIXTURES_DIR / "swagger_2.0.json"

SPECMATCH_ENV_VARS = (
    "SPECMATCH_RULES",
    "SPECMATCH_INCLUDE_WARNINGS",
    "SPECMATCH_STRICT_METHODS",
    "SPECMATCH_NO_CACHE",
)


@pytest.fixture(autouse=True)
def _fresh_output() -> None:
    # CliRunner swaps the standard streams; a manager built during one test
    # would keep writing to the closed ones in the next.
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Specs
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_30_raw() -> dict[str, Any]:
    return json.loads(PETSTORE.read_text(encoding="utf-8"))


@pytest.fixture
def swagger_20_raw() -> dict[str, Any]:
    return json.loads(USERS_SWAGGER.read_text(encoding="utf-8"))


@pytest.fixture
def petstore_spec() -> NormalizedSpec:
    return SpecNormalizer().load(PETSTORE)


@pytest.fixture
def users_spec() -> NormalizedSpec:
    """The Swagger 2.0 users API, converted and normalized."""
    return SpecNormalizer().load(USERS_SWAGGER)


@pytest.fixture
def petstore_file(tmp_path: Path) -> Path:
    target = tmp_path / "petstore.json"
    target.write_text(PETSTORE.read_text(encoding="utf-8"), encoding="utf-8")
    return target


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test against an empty config tree under *tmp_path*.

    Global config lives in ``tmp_path/config/specmatch``, the disk cache in
    ``tmp_path/cache/specmatch``, and ``tmp_path`` becomes the working
    directory so a test can drop a project ``specmatch.json`` there.
    """
    monkeypatch.setattr("specmatch.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for var in SPECMATCH_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
