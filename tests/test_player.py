from syncrocket.interpolation import Interpolation
from syncrocket.player import RocketPlayer
from syncrocket.track import Key, Track


def get_test_tracks():
    first = Track("test1")
    first.set_key(Key(0, 1.0, Interpolation.STEP))
    first.set_key(Key(5, 0.0, Interpolation.STEP))
    first.set_key(Key(10, 1.0, Interpolation.STEP))
    second = Track("test2")
    second.set_key(Key(0, 2.0, Interpolation.STEP))
    second.set_key(Key(5, 0.0, Interpolation.STEP))
    second.set_key(Key(10, 2.0, Interpolation.STEP))
    return [first, second]


def test_finds_all_tracks():
    player = RocketPlayer(get_test_tracks())
    assert player.get_track("test1").get_value(0.0) == 1.0
    assert player.get_track("test2").get_value(0.0) == 2.0


def test_no_surprise_tracks():
    player = RocketPlayer(get_test_tracks())
    assert player.get_track("hello this track should not exist") is None


def test_later_track_with_same_name_wins():
    tracks = get_test_tracks() + [Track("test1", [Key(0, 9.0)])]
    player = RocketPlayer(tracks)
    assert player.get_track("test1").get_value(0.0) == 9.0


def test_accepts_any_iterable():
    player = RocketPlayer(iter(get_test_tracks()))
    assert player.get_track("test2").name == "test2"