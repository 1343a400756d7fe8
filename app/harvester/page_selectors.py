from __future__ import annotations

"""CSS selectors for the directory search results page."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ListingSelectors:
    """Selector hints for one search results layout.

    Field selectors are evaluated relative to a single listing element; the
    remaining selectors are evaluated against the whole document.
    """

    listing: str = ".search-itm.js-shiny-data-user"
    next_page: str = ".next-page-btn"
    reveal_phone: str = 'a[data-pag="mostra telefono"]'
    name: str = "h2.search-itm__rag"
    category: str = ".search-itm__category"
    address: str = ".search-itm__adr"
    phone_container: str = ".search-itm__phone"
    phone_item: str = "li"
    whatsapp_link: str = 'a[href*="wa.me"]'
    business_url: str = 'a[href*="paginegialle.it"][title]'


PAGINE_GIALLE_SELECTORS = ListingSelectors()

__all__ = [
    "ListingSelectors",
    "PAGINE_GIALLE_SELECTORS",
]
