"""Ordered collections whose keys are guaranteed to stay ``0..n-1``.

See README.md for complete documentation and usage examples.
"""

import logging

from listcollection.collection import BaseCollection, Collection
from listcollection.exceptions import UnsupportedOperationError
from listcollection.listcollection import ListCollection

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["BaseCollection", "Collection", "ListCollection", "UnsupportedOperationError"]
