"""Extractor for Kansas City Repertory Theatre (kcrep.org).

KC Rep lists each production once with all of its performance dates, so every
showtime becomes a separate event.
"""

from .site_extractor import SiteExtractor, SiteSelectors

KC_REP = SiteExtractor(
    name="Kansas City Repertory Theatre",
    tags=("kcrep",),
    domains=("kcrep.org",),
    name_fragments=("KC Rep", "Kansas City Repertory"),
    categories=("Theater", "Live Performance"),
    multiple_showtimes=True,
    selectors=SiteSelectors(
        containers=("div[class*=production]", "div[class*=show]:not([class*=showtime])"),
        title=("h1", "h2", "h3", "a[class*=title]"),
        date=("[class*=showtime]", "[class*=date]"),
        link=("a[href]",),
        image=("img[class*=show-image]", "img[src]"),
    ),
    detail_selectors=SiteSelectors(
        description=("div[class*=description]", "div[class*=synopsis]", "p[class*=summary]"),
        price=("[class*=price]", "[class*=cost]"),
        image=("img[class*=show-image]", "img[alt*=show]", "img[class*=production]"),
        ticket=("a[href*=ticket]", "a:-soup-contains('Buy Tickets')"),
    ),
)
