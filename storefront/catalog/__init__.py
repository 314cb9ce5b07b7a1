"""
Catalog package for the product catalogue.

The pure pipeline lives in ``filters``, ``sorting`` and ``pagination``;
``controller`` drives it from UI events for a catalogue page, and
``router`` exposes the same pipeline over HTTP. Products are obtained
through the loaders in ``store``.
"""

from .controller import CatalogueController, LoadPhase  # noqa: F401
from .router import router as catalog_router  # noqa: F401
