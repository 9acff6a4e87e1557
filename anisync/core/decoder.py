from typing import List

# Two-character segments of a provider token and the character each one stands for
SUBSTITUTIONS = {
    "01": "9", "08": "0", "05": "=", "0a": "2", "0b": "3", "0c": "4", "07": "?",
    "00": "8", "5c": "d", "0f": "7", "5e": "f", "17": "/", "54": "l", "09": "1",
    "48": "p", "4f": "w", "0e": "6", "5b": "c", "5d": "e", "0d": "5", "53": "k",
    "1e": "&", "5a": "b", "59": "a", "4a": "r", "4c": "t", "4e": "v", "57": "o",
    "51": "i",
}

# The secondary lookup is always served as JSON
CLOCK_FRAGMENT = "/clock"
CLOCK_JSON_FRAGMENT = "/clock.json"


def split_pairs(token: str) -> List[str]:
    """Whole two-character segments only; a dangling last character is dropped."""
    return [token[i:i + 2] for i in range(0, len(token) - 1, 2)]


def decode_provider_id(token: str) -> str:
    """
    Turn an obfuscated provider token into the resource path it hides.
    Unknown segments are left as they are, so a bad token simply produces
    a path that fails to fetch later on.
    """
    decoded = "".join(SUBSTITUTIONS.get(pair, pair) for pair in split_pairs(token))
    return decoded.replace(CLOCK_FRAGMENT, CLOCK_JSON_FRAGMENT)
