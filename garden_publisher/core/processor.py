"""Page compiler: turns one vault note into a publishable document."""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from garden_publisher.config import CompilerSettings
from garden_publisher.core.context import CompileContext
from garden_publisher.core.discovery import VaultDiscovery
from garden_publisher.core.models import BatchResult, CompiledDocument, NoteError, SourceNote
from garden_publisher.core.vault import VaultIndex
from garden_publisher.errors import NoteNotFoundError, PublisherError
from garden_publisher.transforms.assets import AssetExtractor, render_svg_embeds
from garden_publisher.transforms.blocks import replace_block_ids
from garden_publisher.transforms.drawings import drawing_id, render_drawing
from garden_publisher.transforms.filters import apply_custom_filters, remove_comments
from garden_publisher.transforms.frontmatter import FrontmatterCompiler
from garden_publisher.transforms.grammar import split_frontmatter
from garden_publisher.transforms.links import LinkResolver
from garden_publisher.transforms.queries import QueryEngine, convert_queries
from garden_publisher.transforms.transclusion import TransclusionResolver

logger = logging.getLogger(__name__)

CompileStep = Callable[[CompileContext, str], Awaitable[str]]


class PageCompiler:
    """Compiles notes for publishing.

    Each note goes through a fixed sequence of steps:
    - Frontmatter synthesis
    - Custom user filters
    - Block id rewriting
    - Transclusion
    - Dataview queries
    - Wikilink rewriting
    - Comment removal
    - SVG inlining

    and finally asset extraction, which also yields the files to upload.
    """

    def __init__(
        self,
        vault: VaultIndex,
        settings: CompilerSettings,
        query_engine: Optional[QueryEngine] = None,
        discovery: Optional[VaultDiscovery] = None,
    ):
        """Initialize PageCompiler.

        Args:
            vault: Vault index to read notes and resolve links from
            settings: Compiler settings
            query_engine: Optional dataview engine; queries are left as code without one
            discovery: Discovery used to decide which notes are published.
                       Defaults to one over the same vault.
        """
        self.vault = vault
        self.settings = settings
        self.query_engine = query_engine
        self.discovery = discovery or VaultDiscovery(vault, settings)
        self.frontmatter_compiler = FrontmatterCompiler(settings)
        self.link_resolver = LinkResolver(vault)
        self.asset_extractor = AssetExtractor(vault, settings)

    @property
    def steps(self) -> List[CompileStep]:
        # Order matters: later steps rely on earlier rewrites
        return [
            self.convert_frontmatter,
            self.apply_filters,
            self.replace_block_ids,
            self.transclude,
            self.convert_queries,
            self.convert_links,
            self.remove_comments,
            self.inline_svgs,
        ]

    async def compile(self, note: Union[SourceNote, str]) -> CompiledDocument:
        """Compile one note.

        Args:
            note: SourceNote or vault path

        Returns:
            CompiledDocument with the published text and its assets

        Raises:
            NoteNotFoundError: If the note does not exist in the vault
        """
        if isinstance(note, str):
            note = self._get_note(note)

        context = CompileContext(
            note=note,
            vault=self.vault,
            settings=self.settings,
            is_marked=self.discovery.is_marked,
            query_engine=self.query_engine,
        )
        text = await self.vault.read_text(note.path)

        if note.file.is_drawing and self.settings.use_excalidraw:
            return await self._compile_drawing(context, text)

        for step in self.steps:
            text = await step(context, text)

        text, assets = await self.asset_extractor.extract(text, note.path)
        return CompiledDocument(note.path, text, assets, context.warnings)

    async def compile_many(self, paths: Iterable[str], concurrent: bool = True) -> BatchResult:
        """Compile several notes; one failing note never stops the others.

        Args:
            paths: Vault paths to compile
            concurrent: Compile all notes at once instead of one after another

        Returns:
            BatchResult with compiled documents keyed by path and any failures
        """
        paths = list(paths)
        if concurrent:
            outcomes = await asyncio.gather(*(self._compile_or_error(p) for p in paths))
        else:
            outcomes = [await self._compile_or_error(p) for p in paths]

        result = BatchResult()
        for outcome in outcomes:
            if isinstance(outcome, NoteError):
                result.failures.append(outcome)
            else:
                result.compiled[outcome.path] = outcome
        return result

    async def compile_marked(self, concurrent: bool = True) -> BatchResult:
        """Compile every note marked for publishing."""
        notes = self.discovery.discover_all()
        logger.info("Found %d notes marked for publishing", len(notes))
        return await self.compile_many((n.path for n in notes), concurrent=concurrent)

    async def convert_frontmatter(self, context: CompileContext, text: str) -> str:
        """Replace the note's frontmatter with the published one."""
        frontmatter, body = split_frontmatter(text)
        if frontmatter is not None:
            # The old block's closing line break; the new block brings its own
            body = body[2:] if body.startswith('\r\n') else body[1:] if body.startswith('\n') else body
        return self.frontmatter_compiler.compile(context.note) + body

    async def apply_filters(self, context: CompileContext, text: str) -> str:
        return apply_custom_filters(text, self.settings.custom_filters, context.warn)

    async def replace_block_ids(self, context: CompileContext, text: str) -> str:
        return replace_block_ids(text)

    async def transclude(self, context: CompileContext, text: str) -> str:
        return await TransclusionResolver(context).resolve(text, context.note.path)

    async def convert_queries(self, context: CompileContext, text: str) -> str:
        return await convert_queries(text, context)

    async def convert_links(self, context: CompileContext, text: str) -> str:
        return self.link_resolver.convert_links(text, context.note.path)

    async def remove_comments(self, context: CompileContext, text: str) -> str:
        return remove_comments(text)

    async def inline_svgs(self, context: CompileContext, text: str) -> str:
        return await render_svg_embeds(text, context.note.path, self.vault)

    async def _compile_drawing(self, context: CompileContext, text: str) -> CompiledDocument:
        note = context.note
        frontmatter = self.frontmatter_compiler.compile(note)
        try:
            payload = render_drawing(text, drawing_id(note.file.name), include_runtime=True)
        except PublisherError as e:
            context.warn(f"Cannot render drawing {note.path}: {e}")
            payload = split_frontmatter(text)[1]
        return CompiledDocument(note.path, frontmatter + payload, [], context.warnings)

    async def _compile_or_error(self, path: str) -> Union[CompiledDocument, NoteError]:
        try:
            return await self.compile(path)
        except (PublisherError, OSError, ValueError) as e:
            logger.error("Failed to compile %s: %s", path, e)
            return NoteError(path, str(e))
        except Exception as e:
            logger.exception("Unexpected error compiling %s", path)
            return NoteError(path, f"{type(e).__name__}: {e}")

    def _get_note(self, path: str) -> SourceNote:
        note = self.vault.get_note(path)
        if note is None:
            raise NoteNotFoundError(f"Note not found: {path}")
        return note
