"""Extractor for the Kauffman Center for the Performing Arts (kauffmancenter.org)."""

from .site_extractor import SiteExtractor, SiteSelectors

KAUFFMAN_CENTER = SiteExtractor(
    name="Kauffman Center for the Performing Arts",
    tags=("kauffman",),
    domains=("kauffmancenter.org",),
    name_fragments=("Kauffman",),
    categories=("Theater", "Performing Arts"),
    selectors=SiteSelectors(
        containers=("div[class*=event-item]",),
        title=("h2", "h3", "a[class*=title]"),
        date=("[class*=date]", "[class*=time]"),
        link=("a[href]",),
        description=("[class*=excerpt]",),
        price=("[class*=price]",),
        image=("img[src]",),
    ),
    detail_selectors=SiteSelectors(
        description=("div[class*=description]", "div[class*=summary]"),
        price=("[class*=price]",),
        image=("img[class*=event-image]", "img[alt*=event]"),
        ticket=("a[href*=tickets]", "a[class*=buy]"),
    ),
)
