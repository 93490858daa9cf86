"""Per-compile state handed to every compiler step."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional

from garden_publisher.config import CompilerSettings
from garden_publisher.core.models import SourceNote
from garden_publisher.core.vault import VaultIndex

if TYPE_CHECKING:
    from garden_publisher.transforms.queries import QueryEngine

logger = logging.getLogger(__name__)


@dataclass
class CompileContext:
    """Everything one compile of one note needs.

    Created fresh for each top-level note, so nothing here is shared
    between documents.
    """
    note: SourceNote
    vault: VaultIndex
    settings: CompilerSettings
    is_marked: Callable[[str], bool]
    query_engine: Optional["QueryEngine"] = None
    warnings: List[str] = field(default_factory=list)
    drawing_count: int = 0

    def warn(self, message: str) -> None:
        """Record a warning the user should see and log it."""
        logger.warning(message)
        self.warnings.append(message)
