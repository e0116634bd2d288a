from sqlalchemy import CheckConstraint, UniqueConstraint

from adjourn.models import JournalEntry, Photo


def test_one_entry_per_owner_per_day():
    constraints = [
        constraint
        for constraint in JournalEntry.__table__.constraints
        if isinstance(constraint, UniqueConstraint)
    ]
    assert [[column.name for column in constraint.columns] for constraint in constraints] == [
        ["owner_id", "journal_date"]
    ]


def test_mood_is_range_checked():
    checks = [
        constraint
        for constraint in JournalEntry.__table__.constraints
        if isinstance(constraint, CheckConstraint)
    ]
    assert [constraint.name for constraint in checks] == ["journal_entries_mood_range"]


def test_photos_cascade_with_entry():
    (foreign_key,) = Photo.__table__.c.entry_id.foreign_keys
    assert foreign_key.column.table.name == "journal_entries"
    assert foreign_key.ondelete == "CASCADE"
