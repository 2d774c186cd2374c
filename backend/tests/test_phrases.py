import random

from emojirace.models import SessionPhraseTracker
from emojirace.services.games.catalog import PHRASES, CATEGORIES
from emojirace.services.games.phrases import PhraseSelector

SMALL_CATALOG = [
    {'id': 'f1', 'text': 'Apple pie', 'category': 'food', 'difficulty': 'easy', 'hints': []},
    {'id': 'f2', 'text': 'Banana bread', 'category': 'food', 'difficulty': 'easy', 'hints': []},
    {'id': 'a1', 'text': 'Polar bear', 'category': 'animals', 'difficulty': 'easy', 'hints': []},
]


def _tracker():
    return SessionPhraseTracker(game_id='game_test')


def test_builtin_catalog_is_well_formed():
    ids = [p['id'] for p in PHRASES]
    assert len(ids) == len(set(ids))
    for phrase in PHRASES:
        assert phrase['category'] in CATEGORIES
        assert phrase['difficulty'] in ('easy', 'medium', 'hard')
        assert phrase['text']


def test_no_repeats_until_exhausted(flask_app):
    selector = PhraseSelector(catalog=SMALL_CATALOG, rng=random.Random(7))
    tracker = _tracker()
    seen = []
    for _ in SMALL_CATALOG:
        phrase = selector.select_random_phrase(tracker)
        selector.mark_used(tracker, phrase['id'], phrase['category'], phrase['difficulty'])
        seen.append(phrase['id'])
    assert sorted(seen) == ['a1', 'f1', 'f2']
    assert selector.select_random_phrase(tracker) is None
    assert tracker.to_dict()['total_phrases_used'] == 3


def test_allow_repeats(flask_app):
    selector = PhraseSelector(catalog=SMALL_CATALOG[:1], allow_repeats=True)
    tracker = _tracker()
    selector.mark_used(tracker, 'f1', 'food', 'easy')
    assert selector.select_random_phrase(tracker)['id'] == 'f1'


def test_balances_toward_least_used_category():
    selector = PhraseSelector(catalog=SMALL_CATALOG, rng=random.Random(1))
    tracker = _tracker()
    tracker.category_usage = {'food': 3}
    tracker.difficulty_usage = {'easy': 3}
    for _ in range(10):
        assert selector.select_random_phrase(tracker)['id'] == 'a1'


def test_filters_by_category_and_difficulty():
    selector = PhraseSelector(catalog=SMALL_CATALOG)
    tracker = _tracker()
    assert selector.select_random_phrase(tracker, categories=['animals'])['id'] == 'a1'
    assert selector.select_random_phrase(tracker, difficulties=['hard']) is None


def test_balance_falls_back_to_all_candidates():
    selector = PhraseSelector(catalog=SMALL_CATALOG, rng=random.Random(3))
    tracker = _tracker()
    tracker.used_phrase_ids = ['a1']
    tracker.category_usage = {'animals': 1, 'food': 2}
    tracker.difficulty_usage = {'easy': 3}
    # Neither food nor easy is among the least used, yet something is still picked
    assert selector.select_random_phrase(tracker)['id'] in ('f1', 'f2')


def test_mark_used_and_reset(flask_app):
    selector = PhraseSelector(catalog=SMALL_CATALOG)
    tracker = _tracker()
    selector.mark_used(tracker, 'f1', 'food', 'easy')
    selector.mark_used(tracker, 'f1', 'food', 'easy')
    assert tracker.used_phrase_ids == ['f1']
    assert tracker.category_usage == {'food': 2}
    assert tracker.difficulty_usage == {'easy': 2}

    selector.reset(tracker)
    assert tracker.used_phrase_ids == []
    assert tracker.category_usage == {}


def test_lookup_and_counts():
    selector = PhraseSelector(catalog=SMALL_CATALOG)
    assert selector.get_phrase('a1')['text'] == 'Polar bear'
    assert selector.get_phrase('missing') is None
    assert selector.counts() == {
        'total': 3,
        'categories': {'food': 2, 'animals': 1},
        'difficulties': {'easy': 3},
    }
    assert selector.categories() == ['animals', 'food']
