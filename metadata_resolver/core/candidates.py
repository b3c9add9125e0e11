from __future__ import annotations

from collections.abc import Iterable, Sequence

from metadata_resolver.core.references import extract_content_path, is_http_url, normalize_gateway_base


def build_candidate_urls(reference: str, gateway_bases: Sequence[str]) -> list[str]:
    """Expand a normalized reference into ordered gateway URLs.

    An http(s) reference always comes first. When the reference also carries
    an IPFS content path, one URL per gateway base follows in the configured
    order. Duplicates are dropped, keeping the first occurrence.
    """
    candidate = reference.strip()
    urls: list[str] = []
    if is_http_url(candidate):
        urls.append(candidate)

    content_path = extract_content_path(candidate)
    if content_path:
        urls.extend(f"{normalize_gateway_base(base)}/{content_path}" for base in gateway_bases if base.strip())

    return dedupe_preserving_order(urls)


def dedupe_preserving_order(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        ordered.append(url)
    return ordered
