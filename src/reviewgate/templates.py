"""
Block message templates.

Templates live at ``<home>/templates/block-<id>.md`` (``Settings.templates_dir``)
and may use the ``{{session_id}}`` and ``{{reviewer_agent}}`` placeholders. Selecting
``random`` as the active template picks one by weight, which together with
the recorded review attempts allows comparing how well different wordings
get the agent to actually request a review.
"""

import logging
import random
import re
from pathlib import Path

from reviewgate.config.settings import TemplateConfig

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_ID = "default"

DEFAULT_BLOCK_TEMPLATE = """Review required before exit.

Use the **Task** tool with these parameters:

- `subagent_type`: `"{{reviewer_agent}}"`

Prompt template:

```
SESSION_ID={{session_id}}

## Summary
[What you did and why]

## Files Changed
[List of modified files]
```
"""

_TEMPLATE_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


def load_template(template_id: str, templates_dir: Path) -> str:
    """Read a template, falling back to the built-in default."""
    if not _TEMPLATE_ID_RE.fullmatch(template_id):
        logger.warning("Ignoring invalid template id %r", template_id)
        return DEFAULT_BLOCK_TEMPLATE

    path = Path(templates_dir) / f"block-{template_id}.md"
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return DEFAULT_BLOCK_TEMPLATE
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read template %s: %s", path, e)
        return DEFAULT_BLOCK_TEMPLATE


def select_template(config: TemplateConfig, rng: random.Random | None = None) -> str:
    """Template id to show next: the active one, or a weighted pick for ``random``."""
    if config.active != "random":
        return config.active

    weights = {k: w for k, w in config.weights.items() if w > 0}
    if not weights:
        return DEFAULT_TEMPLATE_ID
    rng = rng or random.Random()
    return rng.choices(list(weights), weights=list(weights.values()), k=1)[0]


def render_template(text: str, session_id: str, reviewer_agent: str) -> str:
    return text.replace("{{session_id}}", session_id).replace("{{reviewer_agent}}", reviewer_agent)
