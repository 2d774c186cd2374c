"""Similarity between a guess and the phrase it targets.

Both sides are normalized first (case, punctuation, whitespace, common
contractions and synonyms, filler words, simple suffixes) and then compared
with a Levenshtein ratio in 0..1.
"""
import re

_PUNCTUATION = re.compile(r'[.,!?;:"()\[\]{}]')
_WHITESPACE = re.compile(r'\s+')

CONTRACTIONS = {
    "don't": 'do not',
    "won't": 'will not',
    "can't": 'cannot',
    "isn't": 'is not',
    "aren't": 'are not',
    "wasn't": 'was not',
    "doesn't": 'does not',
    "didn't": 'did not',
    "i'm": 'i am',
    "you're": 'you are',
    "it's": 'it is',
    "we're": 'we are',
    "they're": 'they are',
    "i'll": 'i will',
    "you'll": 'you will',
    "we'll": 'we will',
}

SYNONYMS = {
    'automobile': 'car',
    'vehicle': 'car',
    'cellphone': 'phone',
    'smartphone': 'phone',
    'television': 'tv',
    'movie': 'film',
    'photograph': 'photo',
    'picture': 'photo',
    'house': 'home',
    'bicycle': 'bike',
    'aeroplane': 'airplane',
    'plane': 'airplane',
}

STOP_WORDS = frozenset(['the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by'])


def normalize(text) -> str:
    if not isinstance(text, str):
        return ''
    normalized = _PUNCTUATION.sub('', text.lower().strip())
    normalized = _WHITESPACE.sub(' ', normalized)
    words = [CONTRACTIONS.get(w, w) for w in normalized.split(' ')]
    words = ' '.join(words).split(' ')
    words = [SYNONYMS.get(w, w) for w in words]
    if len(words) > 2:
        words = [w for w in words if w not in STOP_WORDS]
    return ' '.join(words).strip()


def _strip_suffix(word: str) -> str:
    if word.endswith('s') and not word.endswith('ss') and len(word) > 3:
        return word[:-1]
    if word.endswith('ed') and len(word) > 4:
        return word[:-2]
    if word.endswith('ing') and len(word) > 5:
        return word[:-3]
    return word


def preprocess(text) -> str:
    return ' '.join(_strip_suffix(w) for w in normalize(text).split())


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(guess, target) -> float:
    left = preprocess(guess)
    right = preprocess(target)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    return 1.0 - levenshtein(left, right) / max(len(left), len(right))


def is_match(guess, target, threshold: float = 0.8) -> bool:
    return similarity(guess, target) >= threshold
