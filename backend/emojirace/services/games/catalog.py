"""Built-in phrase catalog.

Each entry carries its category explicitly. A deployment can replace the
catalog with the ``PHRASE_CATALOG`` config key (same shape: list of dicts).
"""

CATEGORIES = ('movies', 'books', 'songs', 'animals', 'food', 'places', 'activities')
DIFFICULTIES = ('easy', 'medium', 'hard')


def _phrase(category, pid, text, difficulty, *hints):
    return {
        'id': f"{category}_{pid}",
        'text': text,
        'category': category,
        'difficulty': difficulty,
        'hints': list(hints),
    }


PHRASES = [
    _phrase('movies', '001', 'The Lion King', 'easy', 'Animated', 'Africa'),
    _phrase('movies', '002', 'Finding Nemo', 'easy', 'Fish', 'Ocean'),
    _phrase('movies', '003', 'Jurassic Park', 'easy', 'Dinosaurs'),
    _phrase('movies', '004', 'Back to the Future', 'medium', 'Time travel', 'DeLorean'),
    _phrase('movies', '005', 'The Wizard of Oz', 'medium', 'Yellow brick road'),
    _phrase('movies', '006', 'Eternal Sunshine of the Spotless Mind', 'hard', 'Memory erasing'),
    _phrase('books', '001', 'Harry Potter', 'easy', 'Wizard', 'Hogwarts'),
    _phrase('books', '002', 'Alice in Wonderland', 'easy', 'Rabbit hole'),
    _phrase('books', '003', 'The Old Man and the Sea', 'medium', 'Fishing', 'Hemingway'),
    _phrase('books', '004', 'Twenty Thousand Leagues Under the Sea', 'hard', 'Submarine'),
    _phrase('books', '005', 'Pride and Prejudice', 'medium', 'Romance', 'Austen'),
    _phrase('songs', '001', 'Happy Birthday', 'easy', 'Celebration'),
    _phrase('songs', '002', 'Twinkle Twinkle Little Star', 'easy', 'Lullaby'),
    _phrase('songs', '003', 'Yellow Submarine', 'medium', 'Beatles'),
    _phrase('songs', '004', 'Bohemian Rhapsody', 'hard', 'Queen', 'Opera'),
    _phrase('songs', '005', 'Singing in the Rain', 'medium', 'Umbrella', 'Dance'),
    _phrase('animals', '001', 'Polar bear', 'easy', 'Arctic', 'White'),
    _phrase('animals', '002', 'Goldfish', 'easy', 'Bowl', 'Pet'),
    _phrase('animals', '003', 'Sea turtle', 'medium', 'Shell', 'Ocean'),
    _phrase('animals', '004', 'Honey badger', 'hard', 'Fearless'),
    _phrase('animals', '005', 'Hungry caterpillar', 'medium', 'Butterfly'),
    _phrase('food', '001', 'Apple pie', 'easy', 'Dessert', 'Baked'),
    _phrase('food', '002', 'Pizza', 'easy', 'Italian', 'Cheese'),
    _phrase('food', '003', 'Hot dog', 'easy', 'Sausage', 'Bun'),
    _phrase('food', '004', 'Banana bread', 'medium', 'Loaf'),
    _phrase('food', '005', 'Fish and chips', 'medium', 'British'),
    _phrase('food', '006', 'Chicken noodle soup', 'hard', 'Comfort food'),
    _phrase('places', '001', 'Paris', 'easy', 'Eiffel Tower', 'France'),
    _phrase('places', '002', 'New York', 'easy', 'Big Apple'),
    _phrase('places', '003', 'Great Wall of China', 'medium', 'Landmark'),
    _phrase('places', '004', 'Niagara Falls', 'medium', 'Waterfall'),
    _phrase('places', '005', 'Mount Everest', 'hard', 'Tallest mountain'),
    _phrase('activities', '001', 'Ice skating', 'easy', 'Winter', 'Rink'),
    _phrase('activities', '002', 'Birthday party', 'easy', 'Cake', 'Balloons'),
    _phrase('activities', '003', 'Camping trip', 'medium', 'Tent', 'Campfire'),
    _phrase('activities', '004', 'Scuba diving', 'medium', 'Underwater'),
    _phrase('activities', '005', 'Rock climbing', 'hard', 'Wall', 'Rope'),
]
