from quire.exceptions import EmptyCollection, InvalidArgument, QuireError
from quire.filters import pick, pick_from_mapping, pick_from_sequence
from quire.sorts import by_chapter_sequence, by_nav_order, compare_by, sort_items

__version__ = "0.1.0"
