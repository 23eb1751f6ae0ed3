"""Row operation vocabularies composed into the assembly builder.

Each capability class is written against ``RowTransformable`` and holds no
state of its own beyond the builder it appends stages to.
"""

from flowscope.compose.operations.filters import AssertionOperations, FilterOperations
from flowscope.compose.operations.identity import IdentityOperations
from flowscope.compose.operations.regex import RegexOperations
from flowscope.compose.operations.text import TextOperations

__all__ = [
    "AssertionOperations",
    "FilterOperations",
    "IdentityOperations",
    "RegexOperations",
    "TextOperations",
]
