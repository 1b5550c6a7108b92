"""OpenAPI document loading, indexing and schema resolution.

- :func:`load_spec` / :func:`load_spec_index` -- read a document from a URL,
  file or stdin.
- :class:`SpecIndex` -- flat, indexed list of operations.
- :class:`SchemaResolver` -- ``$ref`` resolution and body skeletons.
"""

from specrun.parser.index import SpecIndex
from specrun.parser.loader import load_spec, load_spec_index, parse_document
from specrun.parser.schema import SchemaResolver

__all__ = [
    "SchemaResolver",
    "SpecIndex",
    "load_spec",
    "load_spec_index",
    "parse_document",
]
