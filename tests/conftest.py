"""Shared fixtures: throwaway vaults on disk."""

from pathlib import Path
from typing import Dict, Union

import pytest

from garden_publisher.core.vault import FileSystemVault


@pytest.fixture
def make_vault(tmp_path):
    """Create a FileSystemVault from a ``{vault path: content}`` mapping."""
    def factory(files: Dict[str, Union[str, bytes]]) -> FileSystemVault:
        root = tmp_path / "vault"
        root.mkdir(exist_ok=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding='utf-8')
        return FileSystemVault(Path(root))

    return factory
