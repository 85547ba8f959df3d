# ABOUTME: Terminal rendering helpers shared by folio CLI commands.
# ABOUTME: Draws navigation trees and approximates the visible text of a page.

import warnings

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from rich.tree import Tree

from folio.core.pagination import PageContent
from folio.metadata.types import NavigationNode

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)


def navigation_tree(title: str, nodes: tuple[NavigationNode, ...]) -> Tree:
    """Build a Rich tree of a book's table of contents."""
    tree = Tree(f"[bold]{title}[/bold]")

    def _add(parent: Tree, node: NavigationNode) -> None:
        label = node.title
        if node.href:
            label += f" [dim]{node.href}[/dim]"
        branch = parent.add(label)
        for child in node.children:
            _add(branch, child)

    for node in nodes:
        _add(tree, node)
    return tree


def page_text(content: PageContent) -> str:
    """Plain text roughly visible on a page.

    The terminal cannot clip by pixel offset, so the chapter's text is split
    into pages_in_chapter equal slices and the page's slice is returned.
    """
    page = content.page
    text = BeautifulSoup(content.content_slice, "html.parser").get_text(" ")
    words = text.split()
    if page.pages_in_chapter == 1:
        return " ".join(words)

    per_page = -(-len(words) // page.pages_in_chapter)
    start = page.position_within_chapter * per_page
    return " ".join(words[start : start + per_page])
