"""
Marker heuristics for the catalog's embedded search-result frame.

The frame is inspected as raw markup, line by line. The counting rules are
kept exactly as the site's historic checker applied them so result files stay
comparable between runs; they are a policy, not a parser.
"""
from __future__ import annotations

from typing import Optional

from .base import Classification, OutcomeKind

NO_MATCH_MARKER = "Sorry, we didn´t find a matching Entry."
IMAGE_MARKER = "/pics/images/m/"
CART_MARKER = "/addCart/"
LIST_MARKERS = ('class="product-list"', "class='product-list'")
ALT_ATTRIBUTE = "alt="


def has_product_image(text: str) -> bool:
    return IMAGE_MARKER in text


def has_cart_link(text: str) -> bool:
    return CART_MARKER in text


def has_product_list(text: str) -> bool:
    return any(marker in text for marker in LIST_MARKERS)


def has_results(text: str) -> bool:
    """
    Return True if the frame markup shows at least one product indicator.
    The no-match phrase wins over every other marker.
    """
    if NO_MATCH_MARKER in text:
        return False
    return has_product_image(text) or has_cart_link(text) or has_product_list(text)


def count_products(text: str) -> int:
    """
    Estimate how many products the frame lists.

    Image lines only count when they also carry an ``alt`` attribute; cart
    links count once per line. When both are present the smaller number wins,
    a bare list container means "at least one".
    """
    lines = text.split("\n")
    image_count = sum(1 for line in lines if IMAGE_MARKER in line and ALT_ATTRIBUTE in line)
    cart_count = sum(1 for line in lines if CART_MARKER in line)

    if image_count > 0 and cart_count > 0:
        return min(image_count, cart_count)
    if image_count > 0:
        return image_count
    if cart_count > 0:
        return cart_count
    if has_product_list(text):
        return 1
    return 0


def classify(frame_text: Optional[str]) -> Classification:
    if frame_text is None:
        return Classification(OutcomeKind.INDETERMINATE, 0, False,
                              "Iframe not found - only checking static HTML")
    if NO_MATCH_MARKER in frame_text:
        return Classification(OutcomeKind.NO_MATCH, 0, False, "Catalog reported no matching entry")
    if not frame_text.strip():
        return Classification(OutcomeKind.NO_MATCH, 0, False,
                              "Iframe content is empty - only checking static HTML")
    if not has_results(frame_text):
        return Classification(OutcomeKind.NO_MATCH, 0, False,
                              "Iframe contains no product indicators - only checking static HTML")

    count = count_products(frame_text)
    if count == 1:
        return Classification(OutcomeKind.SINGLE, 1, True, "Single product found in iframe")
    if count > 1:
        return Classification(OutcomeKind.MULTIPLE, count, True, "Multiple products found in iframe")
    # Indicators are present but none could be sized.
    return Classification(OutcomeKind.INDETERMINATE, 0, True,
                          "Iframe has product indicators but count is 0 - only checking static HTML")


class CatalogClassifier:
    """Default policy: the catalog's marker table."""

    name = "catalog"

    def classify(self, frame_text: Optional[str]) -> Classification:
        return classify(frame_text)

    def has_results(self, frame_text: str) -> bool:
        return has_results(frame_text)
