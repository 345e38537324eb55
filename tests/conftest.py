"""Shared fixtures for bundlelint tests.

- valid_bundle_yaml: a bundle that lints and compiles without diagnostics
- write_bundle: writes bundle YAML (text or a mapping) below ``tmp_path``
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

VALID_BUNDLE = """\
policies:
  - uid: ssh-policy
    name: SSH
    version: 1.0.0
    tags:
      mondoo.com/category: security
      mondoo.com/platform: linux
    require:
      - provider: os
    groups:
      - title: SSH
        filters: asset.family.contains('unix')
        checks:
          - uid: sshd-01
queries:
  - uid: sshd-01
    title: Disable root login
    mql: sshd.config.params['PermitRootLogin'] == 'no'
"""


@pytest.fixture
def valid_bundle_yaml() -> str:
    """A bundle without any lint or compile findings."""
    return VALID_BUNDLE


@pytest.fixture
def write_bundle(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing bundle files into the test's temporary directory."""

    def _write(content: str | dict[str, Any], name: str = "bundle.mql.yaml") -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if not isinstance(content, str):
            content = yaml.safe_dump(content, sort_keys=False)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
