from __future__ import annotations

from services.review.navigator import SessionNavigator


def test_reset_sorts_and_starts_at_zero():
    nav = SessionNavigator()
    nav.reset(["c.json", "a.json", "b.json"])
    assert nav.keys == ["a.json", "b.json", "c.json"]
    assert nav.position == 0
    assert nav.current_key == "a.json"
    assert nav.can_retreat() is False
    assert nav.can_advance() is True


def test_reset_empty_has_no_current_key():
    nav = SessionNavigator(["a.json"])
    nav.reset([])
    assert len(nav) == 0
    assert nav.current_key is None
    assert nav.can_advance() is False
    assert nav.can_retreat() is False
    assert nav.advance() is False
    assert nav.retreat() is False
    assert nav.position == 0


def test_advance_until_boundary_then_noop():
    nav = SessionNavigator(["a.json", "b.json", "c.json"])
    for expected in (1, 2):
        p = nav.position
        assert nav.can_advance()
        assert nav.advance() is True
        assert nav.position == p + 1 == expected

    assert nav.can_advance() is False
    assert nav.advance() is False
    assert nav.position == 2
    assert nav.current_key == "c.json"


def test_retreat_is_symmetric():
    nav = SessionNavigator(["a.json", "b.json"])
    assert nav.retreat() is False
    nav.advance()
    assert nav.retreat() is True
    assert nav.position == 0


def test_reset_is_deterministic_across_reloads():
    listing = ["b.json", "a.json", "c.json"]
    nav1, nav2 = SessionNavigator(listing), SessionNavigator(reversed(listing))
    assert nav1.keys == nav2.keys
