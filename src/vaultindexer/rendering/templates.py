"""Markdown templates for index documents."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from vaultindexer.storage.base import FileStore

LOGGER = logging.getLogger(__name__)

IMAGE_FILE_DESCRIPTION = "This is an index file for an image attachment. Use it to search the image's text content."
PDF_FILE_DESCRIPTION = "This is an index file for a PDF attachment. Use it to search the document's text content."
CANVAS_FILE_DESCRIPTION = "This is an index file for a canvas. Use it to search the canvas content."

DEFAULT_IMAGE_TEMPLATE = """---
tags: [index, image]
source: "{{path}}"
indexed: {{date}}
size: {{size}}
---

# {{title}}

> {{description}}

![[{{path}}]]

## Extracted content

{{extracted_content}}
"""

DEFAULT_PDF_TEMPLATE = """---
tags: [index, pdf]
source: "{{path}}"
indexed: {{date}}
size: {{size}}
---

# {{title}}

> {{description}}

![[{{path}}]]

## Extracted content

{{extracted_content}}
"""


DEFAULT_CANVAS_TEMPLATE = """---
tags: [index, canvas]
source: "{{path}}"
indexed: {{date}}
---

# {{title}}

> {{description}}

[[{{path}}]]

{{extracted_content}}
"""


class TemplateRenderer:
    """Loads user templates from the vault and fills ``{{name}}`` placeholders."""

    def __init__(self, store: FileStore) -> None:
        self.store = store

    def load(self, custom_path: str, fallback: str) -> str:
        """Return the template at ``custom_path``, or ``fallback`` if missing or empty."""
        if custom_path:
            try:
                content = self.store.read(custom_path)
            except Exception as exc:
                LOGGER.debug("Template not found at %s, using default: %s", custom_path, exc)
            else:
                if content.strip():
                    LOGGER.debug("Loaded custom template %s (%d chars)", custom_path, len(content))
                    return content
                LOGGER.debug("Template %s is empty, using default", custom_path)
        return fallback

    def render(self, template: str, variables: Mapping[str, Optional[str]]) -> str:
        """Substitute placeholders; unknown placeholders and ``None`` values are left alone."""
        result = template
        for key, value in variables.items():
            if value is None:
                LOGGER.debug("Skipping {{%s}}: value is undefined", key)
                continue
            result = result.replace("{{" + key + "}}", value)
        return result
