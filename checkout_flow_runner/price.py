"""Scrape the order total from the rendered page."""

import logging
import re
from collections.abc import Sequence

from checkout_flow_runner.browser.base import BrowserSession

log = logging.getLogger(__name__)

TOTAL_ROW_SELECTOR = "tr.total"
TOTAL_LABEL = "合計"

AMOUNT_PATTERN = re.compile(r"([0-9,]+円)")
STRICT_AMOUNT_PATTERN = re.compile(r"(?:[0-9]{1,3}(?:,[0-9]{3})+|[0-9]+)円")
LABELLED_TOTAL_PATTERN = re.compile(TOTAL_LABEL + r"\s*([0-9,]+円)")

# Returns [leafText, containingBlockText] pairs for text nodes mentioning yen.
# The containing block is the closest block-level ancestor above the leaf's
# own element, so a bare amount in its own <td> or <span> sees its row.
LEAF_AMOUNTS_SCRIPT = """
() => {
  const BLOCKS = 'tr, li, dl, dd, p, div, section, table';
  const pairs = [];
  const walker = document.createTreeWalker(document.body, NodeFilter.SHOW_TEXT);
  while (walker.nextNode()) {
    const node = walker.currentNode;
    const text = (node.textContent || '').trim();
    if (!text || !text.includes('円')) continue;
    const owner = node.parentElement;
    if (!owner) continue;
    const parent = owner.parentElement;
    const block = parent ? parent.closest(BLOCKS) : null;
    pairs.push([text, block ? (block.innerText || block.textContent || '') : '']);
  }
  return pairs;
}
"""


def match_total_row(text: str | None) -> str | None:
    """Find an amount inside the dedicated total row text."""
    if not text:
        return None
    match = AMOUNT_PATTERN.search(text)
    return match.group(1) if match else None


def match_labelled_leaf(pairs: Sequence[Sequence[str]] | None) -> str | None:
    """Pick the first bare amount whose containing block mentions the total."""
    for leaf_text, block_text in pairs or ():
        if STRICT_AMOUNT_PATTERN.fullmatch(leaf_text) and TOTAL_LABEL in block_text:
            return leaf_text
    return None


def match_page_text(text: str | None) -> str | None:
    """Find '<total label> <amount>' anywhere in the page text."""
    if not text:
        return None
    match = LABELLED_TOTAL_PATTERN.search(text)
    return match.group(1) if match else None


async def extract_price(session: BrowserSession) -> str | None:
    """Return the displayed order total, or None when it cannot be found.

    Strategies in order, first hit wins: the ``tr.total`` row, bare amounts
    in a block labelled with the total, then a search of the whole page text.
    Failures are logged and reported as no price.
    """
    try:
        if price := match_total_row(await session.query_text(TOTAL_ROW_SELECTOR)):
            return price
        if price := match_labelled_leaf(await session.evaluate(LEAF_AMOUNTS_SCRIPT)):
            return price
        return match_page_text(await session.body_text())
    except Exception as exc:
        log.warning("Price extraction failed: %s", exc)
        return None
