"""Dataview query substitution.

Query blocks and inline expressions are handed to an external query engine
and replaced by the markdown it returns. The engine is optional; without it
queries are published as the code the user wrote.
"""

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from garden_publisher.transforms.grammar import Segment, SegmentKind, tokenize

if TYPE_CHECKING:
    from garden_publisher.core.context import CompileContext

QUERY_BLOCK_CLASS = '{ .block-language-dataview}'


@runtime_checkable
class QueryEngine(Protocol):
    """What the compiler needs from a query engine.

    Engines report a failed query by raising QueryEngineError. Other
    exceptions are handled the same way.
    """

    async def render_query(self, query: str, context_path: str) -> str: ...

    async def evaluate_inline(self, expression: str, context_path: str) -> Optional[str]: ...


async def convert_queries(text: str, context: "CompileContext") -> str:
    """Replace query blocks and inline expressions with rendered markdown.

    A failing query leaves its original text in place and adds a warning.
    """
    engine = context.query_engine
    if engine is None or not context.settings.use_dataview:
        return text

    parts = []
    for segment in tokenize(text):
        if segment.kind is SegmentKind.CODE_FENCE:
            parts.append(await _render_block(segment, engine, context))
        elif segment.kind is SegmentKind.INLINE_CODE:
            parts.append(await _evaluate_inline(segment, engine, context))
        else:
            parts.append(segment.raw)
    return ''.join(parts)


def query_block_body(segment: Segment, keyword: str) -> Optional[str]:
    """Query text of a ```` ```dataview ```` fence, or None for any other fence."""
    opening = '```' + keyword
    raw = segment.raw
    if not raw.startswith(opening):
        return None
    rest = raw[len(opening):]
    # ```dataviewjs is a different language
    if rest and not rest[0].isspace():
        return None
    if rest.endswith('```'):
        rest = rest[:-3]
    return rest.strip()


def inline_expression(segment: Segment, prefix: str) -> Optional[str]:
    """Expression of an inline ```= expr``` query, or None for other inline code."""
    body = segment.raw[1:-1]
    if not prefix or not body.startswith(prefix):
        return None
    return body[len(prefix):].strip()


async def _render_block(segment: Segment, engine: QueryEngine, context: "CompileContext") -> str:
    query = query_block_body(segment, context.settings.dataview_block_keyword)
    if query is None:
        return segment.raw

    try:
        markdown = await engine.render_query(query, context.note.path)
    # The engine is third-party code; any failure is reported, not raised
    except Exception as e:
        context.warn(f"Dataview query failed in {context.note.path}: {e}")
        return segment.raw

    return f"{markdown}\n{QUERY_BLOCK_CLASS}"


async def _evaluate_inline(segment: Segment, engine: QueryEngine, context: "CompileContext") -> str:
    expression = inline_expression(segment, context.settings.dataview_inline_prefix)
    if not expression:
        return segment.raw

    try:
        result = await engine.evaluate_inline(expression, context.note.path)
    except Exception as e:
        context.warn(f"Dataview inline query {expression!r} failed in {context.note.path}: {e}")
        return segment.raw

    if result is None or result == '':
        return segment.raw
    return str(result)
