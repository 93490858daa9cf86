"""Excalidraw drawing payloads.

A drawing note keeps its scene as JSON (optionally lz-string compressed) in
a fenced block. The published page gets an empty container plus a script
that renders the scene in the browser, so nothing is rasterized here.
"""

import json
import re
from typing import Tuple

from garden_publisher.errors import MalformedSourceError

_SCENE_RE = re.compile(r'```(?P<lang>compressed-json|json)[ \t]*\r?\n(?P<data>.*?)```', re.DOTALL)

# Loaded once per page, before the first drawing
RUNTIME_BUNDLE = (
    '<script src="https://unpkg.com/react@17/umd/react.production.min.js"></script>\n'
    '<script src="https://unpkg.com/react-dom@17/umd/react-dom.production.min.js"></script>\n'
    '<script src="https://unpkg.com/@excalidraw/excalidraw@0.12.0/dist/excalidraw.production.min.js"></script>\n'
    '<script src="https://unpkg.com/lz-string@1.4.4/libs/lz-string.min.js"></script>\n'
    '<script>'
    'window.renderExcalidraw=function(id,data,compressed){'
    'var scene=JSON.parse(compressed?LZString.decompressFromBase64(data.replace(/\\s/g,"")):data);'
    'var root=document.getElementById(id);'
    'ExcalidrawLib.exportToSvg({elements:scene.elements,appState:scene.appState||{},files:scene.files||{}})'
    '.then(function(svg){svg.removeAttribute("width");svg.removeAttribute("height");'
    'svg.style.maxWidth="100%";root.appendChild(svg);});'
    '};'
    '</script>\n'
)


def extract_scene(text: str) -> Tuple[str, bool]:
    """Pull the scene data out of a drawing note.

    Returns:
        Tuple of (scene data, is_compressed)

    Raises:
        MalformedSourceError: If the note has no scene block or the JSON is invalid
    """
    match = _SCENE_RE.search(text)
    if match is None:
        # Plain .excalidraw files are the scene JSON itself
        data = text.strip()
    elif match.group('lang') == 'compressed-json':
        return ''.join(match.group('data').split()), True
    else:
        data = match.group('data').strip()

    try:
        scene = json.loads(data)
    except ValueError as e:
        raise MalformedSourceError(f"Invalid drawing JSON: {e}") from e
    return json.dumps(scene, ensure_ascii=False, separators=(',', ':')), False


def drawing_id(file_name: str, suffix: str = '') -> str:
    """DOM id for a drawing, e.g. ``"My Drawing.excalidraw.md"`` -> ``"My_Drawingexcalidraw.md1"``."""
    return file_name.replace(' ', '_').replace('.', '', 1) + suffix


def render_drawing(text: str, element_id: str, include_runtime: bool) -> str:
    """HTML payload that renders the drawing in ``text`` client side.

    Args:
        text: Raw drawing note text
        element_id: DOM id for the container
        include_runtime: Whether to prepend the shared script bundle

    Raises:
        MalformedSourceError: If the scene cannot be read
    """
    data, compressed = extract_scene(text)
    # </script> inside the string literal would end the script element
    literal = json.dumps(data).replace('</', '<\\/')
    payload = (
        f'<div id="{element_id}" class="excalidraw-drawing"></div>\n'
        f'<script>renderExcalidraw("{element_id}",{literal},{"true" if compressed else "false"});</script>\n'
    )
    if include_runtime:
        return RUNTIME_BUNDLE + payload
    return payload
