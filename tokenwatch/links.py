"""Website link extraction from verified contract source."""

import re
from typing import List, Tuple

URL_PATTERN = re.compile(r"https?://[\w\-.~:/?#\[\]@!$&'()*+,;=%]+")

# Documentation, code hosts, audit firms and blogs that show up in license
# headers and NatSpec comments rather than pointing at the project itself.
EXCLUDED_LINK_PREFIXES = (
    "https://eips.ethereum.org",
    "https://solidity.readthedocs.io",
    "https://github.com",
    "https://gitbook.com",
    "https://hardhat.org",
    "https://forum.zeppelin",
    "https://forum.openzeppelin",
    "https://diligence.consensys",
    "https://blog.",
    "https://consensys.",
    "https://docs.",
    "https://cs.",
    "https://web3js.",
    "https://ethereum.github",
    "https://https.eth.wiki",
)

NO_WEBSITE = "No website link available"
NO_WEBSITE_LINKS = (NO_WEBSITE,)


def extract_links(source_code: str) -> List[str]:
    return URL_PATTERN.findall(source_code or "")


def is_excluded(link: str) -> bool:
    return link.startswith(EXCLUDED_LINK_PREFIXES)


def website_links(source_code: str) -> Tuple[str, ...]:
    """Candidate project websites found in source_code.

    Returns NO_WEBSITE_LINKS instead of an empty tuple when nothing survives
    the denylist.
    """
    found = []
    for link in extract_links(source_code):
        if not is_excluded(link) and link not in found:
            found.append(link)
    return tuple(found) if found else NO_WEBSITE_LINKS
