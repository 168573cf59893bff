"""
Snapshot assembler producing a single self-contained HTML document.

Fetches the root page through the Fetcher, inlines stylesheets, scripts,
media and icons, and rewrites what remains to absolute URLs.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup, Doctype, FeatureNotFound, Tag

from .fetcher import Fetcher, FetchError, BinaryContent
from .rewrite import rewrite_css_urls, parse_srcset, format_srcset
from ..utils.log import get_logger
from ..utils.paths import resolve_url, is_inlined, to_data_uri
from ..utils.constants import IFRAME_SANDBOX


MEDIA_TAGS = ['img', 'video', 'audio', 'source']

# Media attributes holding a single URL
MEDIA_URL_ATTRIBUTES = ('src', 'poster')


class CloneFailure(Exception):
    """The root document could not be retrieved or parsed."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass
class SnapshotContext:
    """State of one clone operation."""

    url: str
    soup: BeautifulSoup
    base_url: str
    # Inlined <style> element -> URL of the stylesheet it came from
    style_bases: Dict[int, str] = field(default_factory=dict)
    failures: List[str] = field(default_factory=list)


def parse_document(html: str) -> BeautifulSoup:
    """Parse HTML with lxml, falling back to the builtin parser."""
    try:
        return BeautifulSoup(html, 'lxml')
    except FeatureNotFound:
        return BeautifulSoup(html, 'html.parser')


def _rel_tokens(link: Tag) -> List[str]:
    rel = link.get('rel') or []
    if isinstance(rel, str):
        rel = rel.split()
    return [token.lower() for token in rel]


def _is_fetchable(url: str) -> bool:
    return url.lower().startswith(('http://', 'https://'))


class SnapshotAssembler:
    """
    Turns a live page into one offline HTML string.

    Every sub-resource of a category is fetched concurrently; a failing
    sub-resource keeps its original reference and never aborts the clone.
    """

    def __init__(self, fetcher: Fetcher):
        """
        Initialize the assembler.

        Args:
            fetcher: Open fetcher used for the root page and all sub-resources
        """
        self.fetcher = fetcher
        self.logger = get_logger("assembler")

    async def clone(self, url: str) -> str:
        """
        Clone a page into a self-contained HTML document.

        Args:
            url: Absolute URL of the page

        Returns:
            Serialized HTML with assets inlined

        Raises:
            CloneFailure: If the root document cannot be fetched or parsed
        """
        self.logger.info(f"Cloning {url}")

        try:
            html = await self.fetcher.fetch_resource(url)
        except FetchError as e:
            self.logger.error(f"Failed to fetch {url}: {e}")
            raise CloneFailure(str(e)) from e

        try:
            soup = parse_document(html)
        except Exception as e:
            self.logger.error(f"Failed to parse {url}: {e}")
            raise CloneFailure(f"Failed to parse document: {e}") from e

        context = SnapshotContext(url=url, soup=soup, base_url=self._document_base(soup, url))

        self.normalize_charset(context)
        await self.inline_stylesheets(context)
        self.rewrite_style_urls(context)
        await self.inline_media(context)
        await self.inline_scripts(context)
        await self.inline_icons(context)
        self.sandbox_iframes(context)
        self.inject_base(context)

        if context.failures:
            self.logger.warning(
                f"{len(context.failures)} resources could not be inlined"
            )
        self.logger.info(f"Cloned {url}")

        return str(soup)

    @staticmethod
    def _document_base(soup: BeautifulSoup, url: str) -> str:
        """Resolution base: the page's own <base href>, else the page URL."""
        base = soup.find('base', href=True)
        if base and base['href'].strip():
            return resolve_url(base['href'], url)
        return url

    async def _settle(self, operations: Iterable[Awaitable], category: str) -> None:
        """Run a batch concurrently and wait for every operation to finish."""
        operations = list(operations)
        if not operations:
            return

        self.logger.debug(f"Inlining {len(operations)} {category}")
        results = await asyncio.gather(*operations, return_exceptions=True)

        for result in results:
            if isinstance(result, Exception):
                self.logger.warning(f"Unexpected error inlining {category}: {result!r}")

    def normalize_charset(self, context: SnapshotContext) -> None:
        """Force every charset declaration to UTF-8."""
        for meta in context.soup.find_all('meta'):
            if meta.has_attr('charset'):
                meta['charset'] = 'utf-8'
            elif meta.get('http-equiv', '').lower() == 'content-type':
                meta['content'] = 'text/html; charset=utf-8'

    async def inline_stylesheets(self, context: SnapshotContext) -> None:
        """Replace each external stylesheet link with a <style> element."""
        links = [
            link for link in context.soup.find_all('link', href=True)
            if 'stylesheet' in _rel_tokens(link) and link['href'].strip()
        ]
        await self._settle(
            (self._inline_stylesheet(context, link) for link in links),
            "stylesheets"
        )

    async def _inline_stylesheet(self, context: SnapshotContext, link: Tag) -> None:
        href = link['href']
        css_url = resolve_url(href, context.base_url)
        if not _is_fetchable(css_url):
            return

        try:
            css = await self.fetcher.fetch_resource(css_url)
        except FetchError as e:
            self.logger.warning(f"Failed to fetch stylesheet: {href} ({e})")
            context.failures.append(css_url)
            return

        style = context.soup.new_tag('style')
        if link.get('media'):
            style['media'] = link['media']
        style.string = css
        link.replace_with(style)
        context.style_bases[id(style)] = css_url

    def rewrite_style_urls(self, context: SnapshotContext) -> None:
        """Absolutize url() references in <style> blocks and style attributes."""
        for style in context.soup.find_all('style'):
            if style.string:
                base = context.style_bases.get(id(style), context.base_url)
                style.string = rewrite_css_urls(style.string, base)

        for elem in context.soup.find_all(style=True):
            elem['style'] = rewrite_css_urls(elem['style'], context.base_url)

    async def inline_media(self, context: SnapshotContext) -> None:
        """Embed images, video, audio and sources as data URIs."""
        operations = []

        for elem in context.soup.find_all(MEDIA_TAGS):
            for attribute in MEDIA_URL_ATTRIBUTES:
                if elem.get(attribute, '').strip():
                    operations.append(self._inline_attribute(context, elem, attribute))
            if elem.get('srcset', '').strip():
                operations.append(self._inline_srcset(context, elem))

        await self._settle(operations, "media")

    async def inline_icons(self, context: SnapshotContext) -> None:
        """Embed favicons and other icon links as data URIs."""
        icons = [
            link for link in context.soup.find_all('link', href=True)
            if 'icon' in _rel_tokens(link) and link['href'].strip()
        ]
        await self._settle(
            (self._inline_attribute(context, link, 'href') for link in icons),
            "icons"
        )

    async def _inline_attribute(self, context: SnapshotContext, elem: Tag, attribute: str) -> None:
        value = elem[attribute]
        if is_inlined(value):
            return
        elem[attribute] = await self._embed(context, value)

    async def _inline_srcset(self, context: SnapshotContext, elem: Tag) -> None:
        candidates = parse_srcset(elem['srcset'])
        urls = await asyncio.gather(*(
            self._embed(context, url) for url, _ in candidates
        ))
        elem['srcset'] = format_srcset([
            (url, descriptor) for url, (_, descriptor) in zip(urls, candidates)
        ])

    async def _embed(self, context: SnapshotContext, ref: str) -> str:
        """
        Fetch a binary reference and return its data URI.

        Falls back to the resolved absolute URL when the resource is
        unavailable.
        """
        if is_inlined(ref):
            return ref

        resource_url = resolve_url(ref, context.base_url)
        if not _is_fetchable(resource_url):
            return resource_url

        try:
            content: Optional[BinaryContent] = await self.fetcher.fetch_resource(
                resource_url, binary=True
            )
        except FetchError as e:
            self.logger.warning(f"Failed to fetch media: {ref} ({e})")
            content = None

        if content is None:
            context.failures.append(resource_url)
            return resource_url

        return to_data_uri(content.data, content.mime_type)

    async def inline_scripts(self, context: SnapshotContext) -> None:
        """Replace each external script with an inline copy of its source."""
        scripts = [
            script for script in context.soup.find_all('script', src=True)
            if script['src'].strip()
        ]
        await self._settle(
            (self._inline_script(context, script) for script in scripts),
            "scripts"
        )

    async def _inline_script(self, context: SnapshotContext, script: Tag) -> None:
        src = script['src']
        script_url = resolve_url(src, context.base_url)
        if not _is_fetchable(script_url):
            return

        try:
            source = await self.fetcher.fetch_resource(script_url)
        except FetchError as e:
            self.logger.warning(f"Failed to fetch script: {src} ({e})")
            context.failures.append(script_url)
            return

        # Inline scripts cannot carry src, and the integrity hash no longer applies
        attrs = {
            name: value for name, value in script.attrs.items()
            if name not in ('src', 'integrity')
        }
        inline = context.soup.new_tag('script', attrs=attrs)
        inline.string = source
        script.replace_with(inline)

    def sandbox_iframes(self, context: SnapshotContext) -> None:
        """Restrict every iframe to a fixed permission set."""
        for iframe in context.soup.find_all('iframe'):
            iframe['sandbox'] = IFRAME_SANDBOX

    def inject_base(self, context: SnapshotContext) -> None:
        """Make <base href> the first child of <head>."""
        soup = context.soup

        for base in soup.find_all('base'):
            base.decompose()

        head = soup.head
        if head is None:
            head = soup.new_tag('head')
            html = soup.html
            if html is None:
                html = soup.new_tag('html')
                for child in list(soup.contents):
                    if not isinstance(child, Doctype):
                        html.append(child.extract())
                soup.append(html)
            html.insert(0, head)

        head.insert(0, soup.new_tag('base', href=context.base_url))


async def clone(url: str, fetcher: Optional[Fetcher] = None) -> str:
    """
    Clone a page into a self-contained HTML document.

    Args:
        url: Absolute URL of the page
        fetcher: Fetcher to use; a default one is opened and closed when omitted

    Returns:
        Serialized HTML with assets inlined

    Raises:
        CloneFailure: If the root document cannot be fetched or parsed
    """
    if fetcher is not None:
        return await SnapshotAssembler(fetcher).clone(url)

    async with Fetcher() as default_fetcher:
        return await SnapshotAssembler(default_fetcher).clone(url)
