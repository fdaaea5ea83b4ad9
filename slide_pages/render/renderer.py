"""Turn document and collection URLs into HTML markup."""

from __future__ import annotations

import logging
import posixpath
import typing as typ

from slide_pages._constants import RELOAD_PATH
from slide_pages.errors import CollectionNotFoundError, DocumentNotFoundError
from slide_pages.utils import is_directory, is_within_directory, search_files, to_title_case

from .assets import (
    get_highlight_theme,
    get_plugins_options,
    get_scripts,
    get_separators_options,
    get_settings_options,
    get_styles,
    get_theme,
    parse_document,
    relative_url,
    strip_base_url,
    url_directory,
)
from .engine import create_environment
from .hyperlinks import LinkContext, rewrite_hyperlinks
from .preprocessors import PreprocessorRegistry, apply_preprocessors

if typ.TYPE_CHECKING:
    from slide_pages.config import Config, ConfigResolver

    from .models import Hyperlink

logger = logging.getLogger(__name__)

COLLECTION_TEMPLATE = "collection.jinja"
ERROR_TEMPLATE = "error.jinja"


class RenderEngine:
    """Render documents, collections, and error pages for one resolver.

    The server, the static builder, and the exporter share one engine, so a
    URL always yields the same markup whichever consumer asks for it.
    """

    def __init__(
        self,
        resolver: ConfigResolver,
        preprocessors: PreprocessorRegistry | None = None,
    ) -> None:
        self.resolver = resolver
        self.preprocessors = preprocessors or PreprocessorRegistry()

    @property
    def config(self) -> Config:
        """Return the project configuration without document overrides."""
        return self.resolver.resolve()

    def render_document(self, url: str) -> tuple[str, list[Hyperlink]]:
        """Render the document at ``url``.

        Parameters
        ----------
        url : str
            Document URL including ``baseUrl``, for example ``/decks/intro.md``.

        Returns
        -------
        tuple[str, list[Hyperlink]]
            The page markup and the local files its content references.

        Raises
        ------
        DocumentNotFoundError
            If no readable file backs ``url``.
        PreprocessorLoadError
            If a selected preprocessor cannot be resolved.
        """
        base_name = posixpath.basename(url)
        name, extension = posixpath.splitext(base_name)
        base_config = self.resolver.resolve()
        relative = strip_base_url(url, base_config.base_url)
        document_path = base_config.root_dir / relative
        try:
            raw = document_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentNotFoundError(url) from exc

        document = parse_document(raw)
        config = self.resolver.resolve(document.config)
        env = create_environment(config, url)
        presentation = config.presentation
        options: dict[str, typ.Any] = {
            "project": config.project,
            "has_favicon": config.has_favicon,
            "hero": _join_text(presentation.get("hero")),
            "name": presentation.get("name") or name,
            "title": presentation.get("title") or to_title_case(base_name),
            "description": _join_text(presentation.get("description")),
            "date": presentation.get("date") or "",
            "author": presentation.get("author") or "",
            "content": document.content,
            "git_url": f"{config.git}{relative}" if config.git else "",
            "theme_url": get_theme(config, url).url,
            "highlight_theme_url": get_highlight_theme(config, url).url,
            "script_urls": [asset.url for asset in get_scripts(config, url)],
            "style_urls": [asset.url for asset in get_styles(config, url)],
            "plugins_options": get_plugins_options(config),
            "settings_options": get_settings_options(config, url),
            "separators_options": get_separators_options(config),
            "host": config.host,
            "port": config.port,
            "watch": config.watch,
            "reload_path": RELOAD_PATH,
            "extension": extension,
        }

        selected = self.preprocessors.resolve(config)
        options["content"] = apply_preprocessors(selected, options["content"], options)
        context = LinkContext(
            url=url,
            document_path=document_path,
            root_dir=config.root_dir,
            base_url=config.base_url,
            assets=config.get_module("assets"),
        )
        content, hyperlinks = rewrite_hyperlinks(options["content"], context)
        options["content"] = env.from_string(content).render(**options)
        template = env.get_template(config.template_path.name)
        markup = template.render(**options)
        logger.debug("rendered %s (%d hyperlinks)", url, len(hyperlinks))
        return markup, hyperlinks

    def render_collection(self, url: str, filter_: str = "") -> str:
        """Render the index page of the collection directory at ``url``.

        Raises
        ------
        CollectionNotFoundError
            If ``url`` does not name a directory under ``rootDir``.
        """
        config = self.resolver.resolve()
        relative = strip_base_url(url, config.base_url)
        directory = config.root_dir / relative
        if not is_directory(directory):
            raise CollectionNotFoundError(url)

        env = create_environment(config, url)
        items = [
            _collection_item(presentation, build=config.build)
            for presentation in search_files(
                filter_, cwd=directory, exts=config.extensions
            )
            if not is_within_directory(directory / presentation, config.out_dir)
        ]
        title = to_title_case(posixpath.basename(url.rstrip("/"))) or config.project
        template = env.get_template(COLLECTION_TEMPLATE)
        return template.render(
            project=config.project,
            has_favicon=config.has_favicon,
            title=title,
            breadcrumb=relative,
            home_url=f"{relative_url(config.base_url, url_directory(url))}/",
            filter=filter_,
            theme_url=get_theme(config, url).url,
            items=items,
            build=config.build,
        )

    def render_error(
        self, code: str | int = "404", label: str = "", message: str = "", *, url: str = "/"
    ) -> str:
        """Render a minimal error page; user partials are never loaded."""
        config = self.resolver.resolve()
        env = create_environment(config, url, include_partials=False)
        template = env.get_template(ERROR_TEMPLATE)
        return template.render(
            project=config.project,
            has_favicon=config.has_favicon,
            code=str(code),
            label=label,
            message=message,
        )


def _join_text(value: typ.Any) -> str:
    """Join a list-valued front matter field; strings pass through whole."""
    if value is None:
        return ""
    if isinstance(value, list | tuple):
        return "".join(str(item) for item in value)
    return str(value)


def _collection_item(presentation: str, *, build: bool) -> dict[str, str]:
    """Describe one collection entry, ``presentation`` being a relative path."""
    file_name = posixpath.basename(presentation)
    name = posixpath.splitext(file_name)[0]
    endpoint_url = posixpath.dirname(presentation)
    built = posixpath.join(endpoint_url, f"{name}.html")
    return {
        "name": name,
        "title": to_title_case(file_name),
        "file": file_name,
        "endpoint": to_title_case(posixpath.basename(endpoint_url)),
        "endpoint_url": f"{endpoint_url}/" if endpoint_url else "",
        "item": name if build else file_name,
        "item_url": built if build else presentation,
        "live_url": presentation,
        "built_url": built,
    }


__all__ = ["RenderEngine"]
