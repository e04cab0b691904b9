"""Soldiom schema definitions.

All Pydantic v2 models used by the stream aggregator, the markdown
structurer, the transports, and configuration loading.
"""

from soldiom.schemas.config import (
    ChatConfig,
    InferenceConfig,
    ModelConfig,
    RoleConfig,
)
from soldiom.schemas.render import (
    Bold,
    CodeBlock,
    Heading,
    InlineNode,
    Link,
    ListItem,
    Paragraph,
    PlainText,
    RenderNode,
)
from soldiom.schemas.streaming import (
    AggregatedState,
    CitationRecord,
    StreamDelta,
    TurnStatus,
    TurnUpdate,
)

__all__ = [
    "AggregatedState",
    "Bold",
    "ChatConfig",
    "CitationRecord",
    "CodeBlock",
    "Heading",
    "InferenceConfig",
    "InlineNode",
    "Link",
    "ListItem",
    "ModelConfig",
    "Paragraph",
    "PlainText",
    "RenderNode",
    "RoleConfig",
    "StreamDelta",
    "TurnStatus",
    "TurnUpdate",
]
