from __future__ import annotations

from typing import List, Optional

from . import config
from .models import Listing
from .page_selectors import ListingSelectors
from .surface import AutomationSurface, Element, first_element
from .utils import clean_location, clean_string


def reveal_phone_numbers(surface: AutomationSurface, selectors: ListingSelectors) -> int:
    """Click every "show phone" control on the page; return how many were clicked."""

    controls = surface.query_all(None, selectors.reveal_phone)
    for control in controls:
        surface.click(control)
    return len(controls)


def _text(surface: AutomationSurface, scope: Element, selector: str) -> str:
    element = first_element(surface, scope, selector)
    if element is None:
        return ""
    return (surface.text_of(element) or "").strip()


def _attr(surface: AutomationSurface, scope: Element, selector: str, name: str) -> str:
    element = first_element(surface, scope, selector)
    if element is None:
        return ""
    return (surface.attribute(element, name) or "").strip()


def extract_listing(
    surface: AutomationSurface, element: Element, selectors: ListingSelectors
) -> Listing:
    """Build a normalised :class:`Listing` from one rendered result element."""

    phones: List[str] = []
    container = first_element(surface, element, selectors.phone_container)
    if container is not None:
        for item in surface.query_all(container, selectors.phone_item):
            phone = clean_string(surface.text_of(item))
            if phone:
                phones.append(phone)

    whatsapp = _attr(surface, element, selectors.whatsapp_link, "href").split("?")[0]

    return Listing(
        name=clean_string(_text(surface, element, selectors.name)),
        category=clean_string(_text(surface, element, selectors.category)),
        location=clean_location(_text(surface, element, selectors.address)),
        phone_numbers=tuple(phones),
        whatsapp_link=whatsapp or None,
        business_url=_attr(surface, element, selectors.business_url, "href"),
    )


def harvest_page(
    surface: AutomationSurface,
    offset: int,
    selectors: ListingSelectors,
    *,
    settle_seconds: Optional[float] = None,
) -> List[Listing]:
    """Return the rendered listings past ``offset``, in page order."""

    reveal_phone_numbers(surface, selectors)
    surface.pause(config.REVEAL_SETTLE_SECONDS if settle_seconds is None else settle_seconds)

    elements = list(surface.query_all(None, selectors.listing))[max(0, offset):]
    return [extract_listing(surface, element, selectors) for element in elements]


__all__ = ["extract_listing", "harvest_page", "reveal_phone_numbers"]
