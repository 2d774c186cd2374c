import pytest

from emojirace.services.games import fuzzy


def test_exact_match_ignores_case_and_punctuation():
    assert fuzzy.similarity('Apple Pie!', 'apple pie') == 1.0


def test_typo_stays_above_threshold():
    score = fuzzy.similarity('aple pie', 'apple pie')
    assert score == pytest.approx(8 / 9)
    assert fuzzy.is_match('aple pie', 'apple pie')


def test_unrelated_guess_scores_low():
    assert not fuzzy.is_match('banana bread', 'polar bear')
    assert not fuzzy.is_match('banana bread', 'apple pie')
    assert fuzzy.similarity('banana bread', 'apple pie') < 0.5
    assert fuzzy.similarity('zzz', 'paris') < 0.5
    assert not fuzzy.is_match('car', 'bike')


@pytest.mark.parametrize('guess,target', [
    ('The Polar Bears', 'polar bear'),
    ("don't stop", 'do not stop'),
    ('cellphone', 'phone'),
    ('jumped', 'jump'),
])
def test_normalization_equivalents(guess, target):
    assert fuzzy.similarity(guess, target) == 1.0


def test_stop_words_kept_for_short_phrases():
    assert fuzzy.normalize('the end') == 'the end'
    assert fuzzy.normalize('lord of the rings') == 'lord rings'


def test_suffix_stripping_rules():
    assert fuzzy.preprocess('glass') == 'glass'
    assert fuzzy.preprocess('sing') == 'sing'
    assert fuzzy.preprocess('running cats') == 'runn cat'


def test_empty_input_never_matches():
    assert fuzzy.similarity('', 'paris') == 0.0
    assert fuzzy.similarity('!!!', 'paris') == 0.0
    assert fuzzy.similarity(None, 'paris') == 0.0


def test_levenshtein_distance():
    assert fuzzy.levenshtein('kitten', 'sitting') == 3
    assert fuzzy.levenshtein('', 'abc') == 3
    assert fuzzy.levenshtein('same', 'same') == 0
