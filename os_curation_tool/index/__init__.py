"""Repository index parsers (Debian control stanzas and RPM primary.xml)."""

from .parser import parse_index
from .records import MalformedRecord
