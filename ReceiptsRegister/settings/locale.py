"""
Translation of spreadsheet titles, header labels and sync messages using Babel.

"""
import logging
from typing import Callable, Dict, List, Optional

from babel import Locale, UnknownLocaleError, negotiate_locale

DEFAULT_LANGUAGE: str = 'en'

CATALOGUES: Dict[str, Dict[str, str]] = {
    'en': {
        'receipts.title': 'Receipts',
        'receipts.receiptDate': 'Date',
        'receipts.merchant': 'Merchant',
        'receipts.total': 'Total',
        'receipts.link': 'Link',
        'receipts.id': 'ID',
        'sync.upToDate': 'Already up to date',
        'sync.exported': 'Exported {count} receipt(s)',
    },
    'es': {
        'receipts.title': 'Recibos',
        'receipts.receiptDate': 'Fecha',
        'receipts.merchant': 'Comercio',
        'receipts.total': 'Total',
        'receipts.link': 'Enlace',
        'receipts.id': 'ID',
        'sync.upToDate': 'Ya está actualizado',
        'sync.exported': '{count} recibo(s) exportado(s)',
    },
}

LOCALE_MAP: List[str] = sorted(CATALOGUES)


def get_language(locale: Optional[str]) -> str:
    """
    Negotiate a locale string against the bundled catalogues.

    Args:
        locale (str): Locale string, e.g. 'es_MX' or 'en-GB'.

    Returns:
        str: The catalogue language, 'en' when the locale is unknown or unsupported.
    """
    if not locale:
        return DEFAULT_LANGUAGE
    try:
        parsed = Locale.parse(locale.replace('-', '_'))
    except (ValueError, TypeError, UnknownLocaleError) as ex:
        logging.warning(f'Could not parse locale "{locale}": {ex}. Falling back to "{DEFAULT_LANGUAGE}".')
        return DEFAULT_LANGUAGE

    language = negotiate_locale([str(parsed), parsed.language], LOCALE_MAP)
    return language or DEFAULT_LANGUAGE


def get_translator(locale: Optional[str] = None) -> Callable[[str], str]:
    """
    Return a ``translate(key)`` callable for the given locale.

    Keys missing from the negotiated catalogue fall back to English, and
    unknown keys translate to themselves.
    """
    language = get_language(locale)
    catalogue = CATALOGUES[language]
    fallback = CATALOGUES[DEFAULT_LANGUAGE]
    logging.debug(f'Using "{language}" translations for locale "{locale}".')

    def translate(key: str) -> str:
        return catalogue.get(key, fallback.get(key, key))

    return translate


def get_default_translator() -> Callable[[str], str]:
    """Return the translator for the locale stored in the sync config."""
    from . import lib
    return get_translator(lib.settings['locale'])
