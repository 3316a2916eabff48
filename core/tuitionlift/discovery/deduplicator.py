"""Merge duplicate search hits before scoring."""

from tuitionlift.discovery.base import SearchHit


def deduplicate(hits: list[SearchHit]) -> list[SearchHit]:
    """
    Merge hits sharing a URL.

    The highest-scoring hit keeps its title; snippets are concatenated
    (highest score first) and blank URLs are dropped. First-seen order is kept.
    """
    by_url: dict[str, SearchHit] = {}

    for hit in hits:
        url = hit.url.strip()
        if not url:
            continue

        existing = by_url.get(url)
        if existing is None:
            by_url[url] = SearchHit(title=hit.title, url=url, content=hit.content, score=hit.score)
            continue

        kept, merged = (hit, existing) if hit.score > existing.score else (existing, hit)
        contents = [kept.content]
        if merged.content and merged.content not in kept.content:
            contents.append(merged.content)
        by_url[url] = SearchHit(
            title=kept.title,
            url=url,
            content="\n\n".join(c for c in contents if c),
            score=max(kept.score, merged.score),
        )

    return list(by_url.values())
