#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/i18n_manager.py
#
# Description:
# Translated user-facing messages (status line, validation warnings). English
# is always loaded as the base catalog; the selected language is laid over it
# so a key missing from a translation still reads as English.
# -----------------------------------------------------------------------------

import os
import locale
from typing import Dict, List, Optional


DEFAULT_I18N_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "i18n")
BASE_LANGUAGE = "en_US"


def parse_message_file(filepath: str) -> Dict[str, str]:
    """
    Read a ``key=value`` message file. Blank lines and lines starting with
    '#' are skipped; values may contain '=' and {placeholders}.
    """
    messages = {}
    with open(filepath, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            messages[key.strip()] = value.strip()
    return messages


def normalize_language(lang: str) -> Optional[str]:
    """
    Turn a locale string into a language code such as 'es_ES'.
    'es_ES.UTF-8' -> 'es_ES', 'de-DE' -> 'de_DE', 'en' -> 'en_US', 'C' -> None
    """
    lang = lang.split('.')[0].split('@')[0].split(':')[0]
    if not lang or lang in ('C', 'POSIX'):
        return None
    if '-' in lang:
        lang = lang.replace('-', '_')
    if '_' in lang:
        return lang
    return BASE_LANGUAGE if lang == 'en' else f"{lang}_{lang.upper()}"


def detect_language(environ=None) -> str:
    """Language code from LANG / LC_* / LANGUAGE, then the process locale, else en_US."""
    environ = os.environ if environ is None else environ
    for env_var in ('LANG', 'LC_ALL', 'LC_MESSAGES', 'LANGUAGE'):
        value = environ.get(env_var)
        if value:
            lang = normalize_language(value)
            if lang:
                return lang

    system_locale = locale.getlocale()[0]
    if system_locale:
        lang = normalize_language(system_locale)
        if lang:
            return lang
    return BASE_LANGUAGE


class I18nManager:
    """
    Looks up translated messages by key.
    """
    def __init__(self, lang_code=None, i18n_dir=DEFAULT_I18N_DIR, debug_mode=False):
        """
        Args:
            lang_code (str, optional): Language such as "en_US" or "es_ES".
                                       Detected from the environment if None.
            i18n_dir (str): Directory holding the <lang_code>.txt message files.
            debug_mode (bool): Print debug traces.
        """
        self.i18n_dir = i18n_dir
        self.debug_mode = debug_mode
        self.lang_code = BASE_LANGUAGE
        self.translations: Dict[str, str] = {}
        self.set_language(lang_code or detect_language())

    def available_languages(self) -> List[str]:
        if not os.path.isdir(self.i18n_dir):
            return []
        return sorted(name[:-4] for name in os.listdir(self.i18n_dir) if name.endswith('.txt'))

    def _read_catalog(self, lang_code) -> Optional[Dict[str, str]]:
        filepath = os.path.join(self.i18n_dir, f"{lang_code}.txt")
        if not os.path.exists(filepath):
            return None
        try:
            messages = parse_message_file(filepath)
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error loading translations from {filepath}: {e}")
            return None
        if self.debug_mode:
            print(f"DEBUG: Loaded {len(messages)} messages from: {filepath}")
        return messages

    def set_language(self, new_lang_code):
        """
        Switch to another language. Unknown languages fall back to en_US.

        Args:
            new_lang_code (str): The new language code to set.
        """
        base = self._read_catalog(BASE_LANGUAGE)
        if base is None:
            print(f"Error: {BASE_LANGUAGE} translation file not found in {self.i18n_dir}")
            base = {}

        translations = dict(base)
        lang_code = BASE_LANGUAGE
        if new_lang_code != BASE_LANGUAGE:
            overlay = self._read_catalog(new_lang_code)
            if overlay is not None:
                translations.update(overlay)
                lang_code = new_lang_code
            elif self.debug_mode:
                print(f"DEBUG: No translations for {new_lang_code}, using {BASE_LANGUAGE}")

        self.translations = translations
        self.lang_code = lang_code

    def get_string(self, key, **kwargs):
        """
        Retrieves the translated message for a key.

        Args:
            key (str): Message key.
            **kwargs: Values substituted into {placeholders} of the message.

        Returns:
            str: The message, or the key itself if no translation is found.
        """
        text = self.translations.get(key, key)
        if not kwargs:
            return text
        try:
            return text.format(**kwargs)
        except (KeyError, IndexError, ValueError):
            return text
