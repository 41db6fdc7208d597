"""Identifier naming transforms.

Every function here is pure: the same identifier, profile and role always
yield the same name.
"""
import re
from enum import Enum
from typing import List

from apiforge.config.profiles import Casing, NamingRule, Number, TargetProfile

_SEPARATORS = re.compile(r"[^0-9A-Za-z]+")
# Acronym runs, capitalised words, lower-case words and digit runs
_WORDS = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")

_VOWELS = set("aeiou")
# Words that already end in "s" in their singular form
_SINGULAR_S_ENDINGS = ("ss", "us", "is")


class NameRole(str, Enum):
    """Where a name is used in generated code."""

    ENTITY = "entity"
    FIELD = "field"
    ROUTE = "route"
    FILE = "file"
    TABLE = "table"


def split_words(identifier: str) -> List[str]:
    """Split an identifier in any common casing into lower-case words.

    Examples:
        "order_items" -> ["order", "items"]
        "OrderItem" -> ["order", "item"]
        "HTTPServer2" -> ["http", "server", "2"]
    """
    words = []
    for chunk in _SEPARATORS.split(identifier or ""):
        words.extend(w.lower() for w in _WORDS.findall(chunk))
    return words


def pluralize(word: str) -> str:
    """English plural of a single lower-case word.

    Examples:
        "category" -> "categories"
        "status" -> "statuses"
        "user" -> "users"
    """
    if not word or word[-1].isdigit():
        return word
    if word.endswith("y") and len(word) > 1 and word[-2] not in _VOWELS:
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    """English singular of a single lower-case word (inverse of ``pluralize``)."""
    if not word or word[-1].isdigit():
        return word
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith("sses"):
        return word[:-2]
    if word.endswith(("xes", "ches", "shes", "zes")):
        return word[:-2]
    if word.endswith(("uses", "ises")) and len(word) > 4:
        return word[:-2]
    if word.endswith("s") and not word.endswith(_SINGULAR_S_ENDINGS):
        return word[:-1]
    return word


def apply_case(words: List[str], casing: Casing) -> str:
    """Join lower-case words with the given casing."""
    if not words:
        return ""
    if casing == Casing.PASCAL:
        return "".join(w.capitalize() for w in words)
    if casing == Casing.CAMEL:
        return words[0] + "".join(w.capitalize() for w in words[1:])
    if casing == Casing.SNAKE:
        return "_".join(words)
    if casing == Casing.KEBAB:
        return "-".join(words)
    if casing == Casing.UPPER_SNAKE:
        return "_".join(words).upper()
    return "".join(words)


def apply_number(words: List[str], number: Number) -> List[str]:
    """Apply grammatical number to the last word."""
    if not words or number == Number.ASIS:
        return list(words)
    last = words[-1]
    if number == Number.PLURAL:
        last = pluralize(singularize(last))
    else:
        last = singularize(last)
    return words[:-1] + [last]


def convert(identifier: str, rule: NamingRule) -> str:
    """Apply one naming rule to an identifier, without reserved-word handling."""
    return apply_case(apply_number(split_words(identifier), rule.number), rule.case)


def naming_rule(profile: TargetProfile, role: NameRole) -> NamingRule:
    return getattr(profile.naming, NameRole(role).value)


def map_name(identifier: str, profile: TargetProfile, role: NameRole) -> str:
    """Name for ``identifier`` in the target described by ``profile``.

    Names that collide with a reserved word of the target are escaped with
    the profile's ``reserved_format``; names starting with a digit get a
    leading underscore. Routes, file and table names are never escaped.
    """
    role = NameRole(role)
    name = convert(identifier, naming_rule(profile, role))
    if not name:
        name = "_"

    if role in (NameRole.ROUTE, NameRole.FILE, NameRole.TABLE):
        return name

    if name[0].isdigit():
        name = "_" + name
    if name in profile.reserved_words:
        name = profile.reserved_format.format(name=name)
    return name


def strip_id_suffix(identifier: str) -> str:
    """Association name for a foreign-key column.

    Examples:
        "category_id" -> "category"
        "authorId" -> "author"
        "owner" -> "owner"
    """
    words = split_words(identifier)
    if len(words) > 1 and words[-1] == "id":
        words = words[:-1]
    return "_".join(words)
