import random

from flask import current_app

from emojirace.models import now_ms
from .catalog import PHRASES, CATEGORIES, DIFFICULTIES


class PhraseSelector:
    """Balanced, non-repeating phrase choice for one game session.

    The per-game tracker is a ``SessionPhraseTracker`` row; this class is the
    only thing that mutates it.
    """

    def __init__(self, catalog=None, allow_repeats=False, rng=None):
        self._catalog = list(catalog) if catalog is not None else list(PHRASES)
        self.allow_repeats = allow_repeats
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, config):
        return cls(
            catalog=config.get('PHRASE_CATALOG'),
            allow_repeats=bool(config.get('PHRASE_ALLOW_REPEATS', False)),
        )

    def categories(self):
        present = {p['category'] for p in self._catalog}
        ordered = [c for c in CATEGORIES if c in present]
        return ordered + sorted(present - set(ordered))

    def counts(self):
        by_category = {}
        by_difficulty = {}
        for phrase in self._catalog:
            by_category[phrase['category']] = by_category.get(phrase['category'], 0) + 1
            by_difficulty[phrase['difficulty']] = by_difficulty.get(phrase['difficulty'], 0) + 1
        return {'total': len(self._catalog), 'categories': by_category, 'difficulties': by_difficulty}

    def get_phrase(self, phrase_id):
        for phrase in self._catalog:
            if phrase['id'] == phrase_id:
                return dict(phrase)
        return None

    def select_random_phrase(self, tracker, categories=None, difficulties=None):
        used = set(tracker.used_phrase_ids or [])
        candidates = [
            p for p in self._catalog
            if (not categories or p['category'] in categories)
            and (not difficulties or p['difficulty'] in difficulties)
            and (self.allow_repeats or p['id'] not in used)
        ]
        if not candidates:
            return None
        pool = self._balance(candidates, tracker) or candidates
        return dict(self._rng.choice(pool))

    def _balance(self, candidates, tracker):
        category_usage = {c: 0 for c in self.categories()}
        category_usage.update(tracker.category_usage or {})
        difficulty_usage = {d: 0 for d in DIFFICULTIES}
        difficulty_usage.update(tracker.difficulty_usage or {})

        least_category = min(category_usage.values())
        least_difficulty = min(difficulty_usage.values())
        quiet_categories = {c for c, n in category_usage.items() if n == least_category}
        quiet_difficulties = {d for d, n in difficulty_usage.items() if n == least_difficulty}
        return [
            p for p in candidates
            if p['category'] in quiet_categories or p['difficulty'] in quiet_difficulties
        ]

    def mark_used(self, tracker, phrase_id, category, difficulty):
        # JSON columns only notice reassignment, never in-place mutation
        used = list(tracker.used_phrase_ids or [])
        if phrase_id not in used:
            used.append(phrase_id)
        category_usage = dict(tracker.category_usage or {})
        category_usage[category] = category_usage.get(category, 0) + 1
        difficulty_usage = dict(tracker.difficulty_usage or {})
        difficulty_usage[difficulty] = difficulty_usage.get(difficulty, 0) + 1

        tracker.used_phrase_ids = used
        tracker.category_usage = category_usage
        tracker.difficulty_usage = difficulty_usage
        tracker.last_used = now_ms()
        return tracker

    def reset(self, tracker):
        tracker.used_phrase_ids = []
        tracker.category_usage = {}
        tracker.difficulty_usage = {}
        tracker.last_used = now_ms()
        current_app.logger.info(f"[phrases-reset] game={tracker.game_id}")
        return tracker
