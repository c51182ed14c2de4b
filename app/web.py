"""HTML page rendering for the public catalog and the admin screens."""

from __future__ import annotations

import re
from html import escape
from textwrap import dedent
from typing import Sequence
from urllib.parse import urlencode

from .config import Settings
from .models import CatalogQuery, CommentView, ContentView, MediaKind


LAYOUT_TEMPLATE = dedent(
    """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>__TITLE__ · __APP_NAME__</title>
    <style>
        :root {
            color-scheme: dark;
            font-family: 'Inter', 'Segoe UI', system-ui, -apple-system, sans-serif;
            --surface: #141414;
            --text-muted: #a6a6a6;
            --outline: #2b2b2b;
            background: #000000;
            color: #f5f5f5;
        }
        body { margin: 0; }
        a { color: inherit; }
        header.top {
            display: flex;
            justify-content: space-between;
            align-items: center;
            padding: 1rem 1.5rem;
            border-bottom: 1px solid var(--outline);
        }
        header.top form { display: inline; }
        main { max-width: 1080px; margin: 0 auto; padding: 2rem 1.5rem 4rem; }
        .grid {
            display: grid;
            gap: 1.25rem;
            grid-template-columns: repeat(auto-fill, minmax(200px, 1fr));
        }
        .card {
            background: var(--surface);
            border: 1px solid var(--outline);
            border-radius: 16px;
            padding: 1rem;
        }
        .card img, .detail img { width: 100%; border-radius: 12px; }
        .detail { display: grid; gap: 2rem; grid-template-columns: 280px 1fr; }
        .badge {
            display: inline-block;
            padding: 0.15rem 0.6rem;
            margin: 0 0.25rem 0.25rem 0;
            border-radius: 999px;
            border: 1px solid var(--outline);
            font-size: 0.8rem;
        }
        .muted { color: var(--text-muted); }
        .error { color: #ff7b7b; }
        form.filters { display: flex; flex-wrap: wrap; gap: 0.75rem; margin-bottom: 2rem; }
        label { display: block; margin-top: 0.75rem; }
        input, select, textarea { width: 100%; padding: 0.5rem; box-sizing: border-box; }
        form.filters input, form.filters select { width: auto; }
        ul.comments { list-style: none; padding: 0; }
        ul.comments li { border-bottom: 1px solid var(--outline); padding: 0.75rem 0; }
    </style>
</head>
<body>
    <header class="top">
        <a href="/"><strong>__APP_NAME__</strong></a>
        <nav>__NAV__</nav>
    </header>
    <main>
__BODY__
    </main>
</body>
</html>
"""
)


PLACEHOLDER_RE = re.compile(r"__(?:TITLE|APP_NAME|NAV|BODY)__")


SEARCH_SCRIPT = dedent(
    """
<script>
    (function() {
        const form = document.getElementById('tmdb-search');
        const results = document.getElementById('tmdb-results');
        const status = document.getElementById('tmdb-status');
        const fields = ['tmdbId', 'title', 'name', 'overview', 'releaseDate', 'firstAirDate',
            'posterPath', 'posterUrl', 'backdropPath', 'popularity', 'voteAverage',
            'voteCount', 'mediaType', 'year', 'type'];

        function fill(item) {
            fields.forEach((key) => {
                const input = document.querySelector(`[name="${key}"]`);
                if (input && item[key] !== null && item[key] !== undefined) {
                    input.value = item[key];
                }
            });
            document.querySelector('[name="genreIds"]').value = JSON.stringify(item.genreIds || []);
            document.querySelector('[name="adult"]').value = item.adult ? 'true' : 'false';
        }

        form.addEventListener('submit', async (event) => {
            event.preventDefault();
            const query = form.querySelector('input').value.trim();
            if (!query) {
                return;
            }
            status.textContent = 'Searching…';
            results.innerHTML = '';
            try {
                const response = await fetch(`/api/tmdb/search?q=${encodeURIComponent(query)}`);
                const payload = await response.json();
                if (!response.ok) {
                    const detail = payload.detail || {};
                    status.textContent = detail.description || 'TMDB search failed.';
                    return;
                }
                status.textContent = `${payload.length} result(s)`;
                payload.forEach((item) => {
                    const card = document.createElement('button');
                    card.type = 'button';
                    card.className = 'card';
                    card.textContent = `${item.title} (${item.year || '?'}) · ${item.mediaType}`;
                    card.addEventListener('click', () => fill(item));
                    results.appendChild(card);
                });
            } catch (err) {
                status.textContent = 'TMDB search failed.';
            }
        });
    })();
</script>
"""
)


def _render_page(
    settings: Settings, *, title: str, body: str, is_admin: bool
) -> str:
    if is_admin:
        nav = (
            '<a href="/admin/new">New entry</a> '
            '<form method="post" action="/admin/logout">'
            '<button type="submit">Log out</button></form>'
        )
    else:
        nav = '<a href="/admin/login">Admin</a>'

    replacements = {
        "__TITLE__": escape(title),
        "__APP_NAME__": escape(settings.app_name),
        "__NAV__": nav,
        "__BODY__": body,
    }
    return PLACEHOLDER_RE.sub(lambda match: replacements[match.group(0)], LAYOUT_TEMPLATE)


def _badges(values: Sequence[str]) -> str:
    return "".join(f'<span class="badge">{escape(value)}</span>' for value in values)


def _tag_links(tags: Sequence[str]) -> str:
    return "".join(
        f'<a class="badge" href="{escape(home_url(CatalogQuery(tag=tag)))}">#{escape(tag)}</a>'
        for tag in tags
    )


def _rating(value: float) -> str:
    return f"{value:g}"


def _option(value: str, label: str, selected: str) -> str:
    marker = " selected" if value == selected else ""
    return f'<option value="{escape(value)}"{marker}>{escape(label)}</option>'


def _content_card(content: ContentView) -> str:
    poster = (
        f'<img src="{escape(content.poster_url)}" alt="" loading="lazy" />'
        if content.poster_url
        else ""
    )
    year = f" ({escape(content.year)})" if content.year else ""
    return dedent(
        f"""
        <article class="card">
            <a href="/content/{escape(content.id)}">{poster}
            <h3>{escape(content.display_title())}{year}</h3></a>
            <p>★ {_rating(content.my_rating)}</p>
            <div>{_badges(content.genres)}</div>
            <div class="muted">{_tag_links(content.tags)}</div>
        </article>
        """
    )


def render_home(
    settings: Settings,
    contents: Sequence[ContentView],
    query: CatalogQuery,
    tags: Sequence[str],
    *,
    is_admin: bool,
) -> str:
    """Return the catalog listing with its filter and sort controls."""

    kind = query.media_kind.value if query.media_kind else ""
    kind_options = "".join(
        _option(value, label, kind)
        for value, label in (
            ("", "All types"),
            (MediaKind.FILM.value, "Films"),
            (MediaKind.SERIES.value, "Series"),
        )
    )
    tag_options = _option("", "All tags", query.tag or "") + "".join(
        _option(tag, f"#{tag}", query.tag or "") for tag in tags
    )
    sort_options = "".join(
        _option(value, label, query.sort)
        for value, label in (
            ("latest", "Newest"),
            ("oldest", "Oldest"),
            ("rating", "My rating"),
            ("title", "Title"),
            ("year", "Release year"),
            ("popularity", "Popularity"),
        )
    )
    min_rating = "" if query.min_rating is None else _rating(query.min_rating)
    genre = "" if query.genre_id is None else str(query.genre_id)
    filters = dedent(
        f"""
        <form class="filters" method="get" action="/">
            <input type="search" name="q" placeholder="Search" value="{escape(query.q or '')}" />
            <select name="type">{kind_options}</select>
            <select name="tag">{tag_options}</select>
            <input type="number" name="minRating" min="0" max="10" step="0.5" placeholder="Min ★" value="{min_rating}" />
            <input type="hidden" name="genre" value="{genre}" />
            <select name="sort">{sort_options}</select>
            <button type="submit">Apply</button>
        </form>
        """
    )
    if contents:
        cards = "".join(_content_card(content) for content in contents)
        listing = f'<section class="grid">{cards}</section>'
    else:
        listing = '<p class="muted">No recommendations match these filters yet.</p>'
    return _render_page(
        settings, title="Recommendations", body=filters + listing, is_admin=is_admin
    )


def render_content_detail(
    settings: Settings,
    content: ContentView,
    comments: Sequence[CommentView],
    *,
    is_admin: bool,
    error: str | None = None,
) -> str:
    poster = (
        f'<img src="{escape(content.poster_url)}" alt="" />' if content.poster_url else ""
    )
    admin_actions = ""
    if is_admin:
        admin_actions = dedent(
            f"""
            <p>
                <a href="/admin/content/{escape(content.id)}/edit">Edit</a>
                <form method="post" action="/admin/content/{escape(content.id)}/delete" style="display:inline">
                    <button type="submit">Delete</button>
                </form>
            </p>
            """
        )

    comment_items = []
    for comment in comments:
        delete_button = ""
        if is_admin:
            delete_button = (
                f'<form method="post" action="/admin/comments/{escape(comment.id)}/delete" '
                'style="display:inline"><button type="submit">Remove</button></form>'
            )
        comment_items.append(
            f"<li><strong>{escape(comment.nickname)}</strong> "
            f'<span class="muted">{comment.created_at:%Y-%m-%d %H:%M}</span>'
            f"{delete_button}<p>{escape(comment.text)}</p></li>"
        )
    comment_list = (
        f'<ul class="comments">{"".join(comment_items)}</ul>'
        if comment_items
        else '<p class="muted">No comments yet.</p>'
    )
    error_html = f'<p class="error">{escape(error)}</p>' if error else ""
    subtitle = " · ".join(
        part for part in (content.year, content.media_type or content.type) if part
    )

    body = dedent(
        f"""
        <section class="detail">
            <div>{poster}</div>
            <div>
                <h1>{escape(content.display_title())}</h1>
                <p class="muted">{escape(subtitle)}</p>
                <div>{_badges(content.genres)}</div>
                <p>{escape(content.overview)}</p>
                <h2>★ {_rating(content.my_rating)}</h2>
                <p>{escape(content.my_note)}</p>
                <div class="muted">{_tag_links(content.tags)}</div>
                {admin_actions}
            </div>
        </section>
        <section>
            <h2>Comments</h2>
            {comment_list}
            {error_html}
            <form method="post" action="/content/{escape(content.id)}/comments">
                <label>Nickname <input name="nickname" maxlength="60" required /></label>
                <label>Comment <textarea name="text" rows="3" maxlength="2000" required></textarea></label>
                <button type="submit">Post</button>
            </form>
        </section>
        """
    )
    return _render_page(
        settings, title=content.display_title(), body=body, is_admin=is_admin
    )


def render_admin_login(settings: Settings, *, error: str | None = None) -> str:
    error_html = f'<p class="error">{escape(error)}</p>' if error else ""
    body = dedent(
        f"""
        <h1>Administrator sign in</h1>
        {error_html}
        <form method="post" action="/admin/login">
            <label>Password <input type="password" name="password" required /></label>
            <button type="submit">Sign in</button>
        </form>
        """
    )
    return _render_page(settings, title="Sign in", body=body, is_admin=False)


def render_content_form(
    settings: Settings,
    *,
    content: ContentView | None = None,
    values: dict[str, str] | None = None,
    error: str | None = None,
) -> str:
    """Return the create form (with TMDB search) or the edit form for ``content``."""

    current: dict[str, str] = {}
    if content is not None:
        dumped = content.model_dump(by_alias=True, mode="json")
        for key, value in dumped.items():
            if value is None:
                current[key] = ""
            elif isinstance(value, list):
                current[key] = ", ".join(str(part) for part in value)
            else:
                current[key] = str(value)
    if values:
        current.update(values)

    def field(name: str, label: str, *, kind: str = "text", required: bool = False) -> str:
        value = escape(current.get(name, ""))
        marker = " required" if required else ""
        if kind == "textarea":
            return (
                f'<label>{escape(label)} <textarea name="{name}" rows="4"{marker}>'
                f"{value}</textarea></label>"
            )
        if kind == "number":
            marker += ' min="0" max="10" step="0.5"'
        return (
            f'<label>{escape(label)} <input type="{kind}" name="{name}" '
            f'value="{value}"{marker} /></label>'
        )

    if content is None:
        heading = "New recommendation"
        action = "/admin/content"
        search = dedent(
            """
            <form id="tmdb-search">
                <label>Search TMDB <input type="search" placeholder="Title" /></label>
                <button type="submit">Search</button>
            </form>
            <p id="tmdb-status" class="muted"></p>
            <div id="tmdb-results" class="grid"></div>
            """
        )
        script = SEARCH_SCRIPT
    else:
        heading = f"Edit {content.display_title()}"
        action = f"/admin/content/{content.id}"
        search = ""
        script = ""

    adult = current.get("adult", "")
    adult_options = "".join(
        _option(value, label, adult)
        for value, label in (("", "Unknown"), ("false", "No"), ("true", "Yes"))
    )
    error_html = f'<p class="error">{escape(error)}</p>' if error else ""
    fields = "".join(
        [
            field("tmdbId", "TMDB id", required=True),
            field("title", "Title", required=True),
            field("name", "Original name"),
            field("overview", "Overview", kind="textarea"),
            field("releaseDate", "Release date"),
            field("firstAirDate", "First air date"),
            field("year", "Year"),
            field("mediaType", "Media type (movie / tv)"),
            field("type", "Type"),
            field("posterPath", "Poster path"),
            field("posterUrl", "Poster URL"),
            field("backdropPath", "Backdrop path"),
            field("genreIds", "Genre ids (comma separated or JSON array)"),
            field("popularity", "Popularity"),
            field("voteAverage", "Vote average"),
            field("voteCount", "Vote count"),
            f'<label>Adult <select name="adult">{adult_options}</select></label>',
            field("myRating", "My rating (0-10)", kind="number", required=True),
            field("myNote", "My note", kind="textarea", required=True),
            field("tags", "Tags (comma separated)"),
        ]
    )
    body = (
        f"<h1>{escape(heading)}</h1>{search}{error_html}"
        f'<form method="post" action="{escape(action)}">{fields}'
        '<button type="submit">Save</button></form>'
        f"{script}"
    )
    return _render_page(settings, title=heading, body=body, is_admin=True)


def home_url(query: CatalogQuery) -> str:
    """Return the listing URL reproducing ``query``."""

    params = {
        "q": query.q or "",
        "type": query.media_kind.value if query.media_kind else "",
        "tag": query.tag or "",
        "genre": "" if query.genre_id is None else str(query.genre_id),
        "minRating": "" if query.min_rating is None else _rating(query.min_rating),
        "sort": "" if query.sort == "latest" else query.sort,
    }
    encoded = urlencode({key: value for key, value in params.items() if value})
    return f"/?{encoded}" if encoded else "/"
