"""
signal_detector.py - Regex-based task-category detection for URL paths.

Usage:
    signals = detect_signals("/en/accessibility-statement")
    # {"homepage": False, "accessibility": True, ...}
"""

import re
import unicodedata
from urllib.parse import unquote

PRIORITY_CATEGORIES = (
    "homepage",
    "search",
    "accessibility",
    "topTask",
    "contact",
    "about",
    "help",
    "resources",
)

# Accessibility statements are published in the site's own language, so the EU
# set is covered with both accented and ASCII-folded spellings.
ACCESSIBILITY_TERMS = (
    r"accessibility",
    r"a11y",
    r"accessibilit[eéaà]",          # fr, it
    r"barrierefrei",                # de
    r"toegankelijk",                # nl
    r"accesibilidad",               # es
    r"acessibilidade",              # pt
    r"accesibilitate",              # ro
    r"dost[eę]pno[sś][cć]",         # pl
    r"p[rř][ií]stupnos[tť]",        # cs, sk
    r"pristupa[cč]nost",            # hr
    r"tillg[aä]nglighet",           # sv
    r"tilg(?:ae|æ|a)ngelighed",     # da
    r"tilgjengelighet",             # no
    r"saavutettavuu",               # fi
    r"hozz[aá]f[eé]rhet[oöő]s[eé]g",  # hu
    r"akad[aá]lymentes",            # hu
    r"προσβασιμ",                   # el
    r"достъпност",                  # bg
    r"dostopnost",                  # sl
    r"pieejam[iī]b",                # lv
    r"piek[lļ][uū]stam[iī]b",       # lv
    r"prieinamum",                  # lt
    r"ligip(?:ä|a){2}setav",        # et
    r"a[cċ]{2}essibbilt",           # mt
    r"inrochtaineacht",             # ga
)

PATTERNS = {
    "search": r"(^|/)(search|suche|recherche|zoeken|buscar|ricerca|pesquisa|szukaj|haku|hledat)(/|$)|find",
    "accessibility": "|".join(ACCESSIBILITY_TERMS),
    "topTask": r"services?|apply|pay|register|renew|book|report|request|top-?tasks?",
    "contact": r"(^|/)contact(/|$)",
    "about": r"(^|/)about(/|$)",
    "help": r"(^|/)help|support|faq(/|$)",
    "resources": r"(^|/)resources?(/|$)",
}

COMPILED_PATTERNS = {key: re.compile(pattern, re.IGNORECASE) for key, pattern in PATTERNS.items()}


def normalize_path(pathname: str) -> str:
    decoded = unquote(pathname or "")
    return unicodedata.normalize("NFC", decoded).lower()


def detect_signals(pathname: str) -> dict:
    """
    Classifies a URL path against the task taxonomy. Signals are independent:
    one path may match several categories.
    """
    path = normalize_path(pathname)
    results = {"homepage": path in ("", "/")}
    for key, pattern in COMPILED_PATTERNS.items():
        results[key] = bool(pattern.search(path))
    return {key: results[key] for key in PRIORITY_CATEGORIES}


def matched_signals(pathname: str) -> frozenset:
    return frozenset(key for key, found in detect_signals(pathname).items() if found)
