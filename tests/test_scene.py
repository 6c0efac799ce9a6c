import asyncio

import pytest

from custom_components.govee_lan_sync.scene import (
    BUILTIN_SCENES,
    Keyframe,
    Scene,
    ScenePlayer,
)

BLACK = (0, 0, 0)
ORANGE = (200, 100, 0)


def _scene(transition="linear", loop=False):
    return Scene(
        id="test",
        name="Test",
        keyframes=(
            Keyframe(2.0, ORANGE, 50, transition),
            Keyframe(0.0, BLACK, 100),
        ),
        duration=2.0,
        loop=loop,
    )


def test_keyframes_are_sorted():
    scene = _scene()
    assert [frame.time for frame in scene.keyframes] == [0.0, 2.0]


def test_linear_interpolation():
    scene = _scene()
    assert scene.sample(0.0) == (BLACK, 100)
    assert scene.sample(1.0) == ((100, 50, 0), 75)
    assert scene.sample(2.0) == (ORANGE, 50)
    assert scene.sample(10.0) == (ORANGE, 50)


def test_step_holds_until_keyframe():
    scene = _scene("step")
    assert scene.sample(1.9) == (BLACK, 100)
    assert scene.sample(2.0) == (ORANGE, 50)


def test_ease_is_slow_at_the_ends():
    scene = _scene("ease")
    assert scene.sample(1.0)[0] == (100, 50, 0)
    assert scene.sample(0.5)[0] == (31, 16, 0)


def test_loop_wraps_to_first_keyframe():
    scene = Scene(
        id="wrap",
        name="Wrap",
        keyframes=(Keyframe(0.0, (255, 0, 0)), Keyframe(1.0, (0, 0, 255))),
        duration=2.0,
        loop=True,
    )
    assert scene.sample(1.5)[0] == (128, 0, 128)
    assert scene.sample(2.0)[0] == (255, 0, 0)
    assert scene.sample(3.0)[0] == (0, 0, 255)
    assert not scene.finished(100.0)


def test_finished():
    scene = _scene()
    assert not scene.finished(1.0)
    assert scene.finished(2.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"keyframes": (), "duration": 1.0},
        {"keyframes": (Keyframe(0.0, BLACK),), "duration": 0},
    ],
)
def test_invalid_scene(kwargs):
    with pytest.raises(ValueError):
        Scene(id="bad", name="Bad", **kwargs)


def test_invalid_transition():
    with pytest.raises(ValueError):
        Keyframe(0.0, BLACK, transition="bounce")


def test_builtin_scenes():
    assert set(BUILTIN_SCENES) == {"rainbow", "party", "chill", "sunset"}
    assert BUILTIN_SCENES["rainbow"].loop
    assert not BUILTIN_SCENES["party"].loop
    assert BUILTIN_SCENES["chill"].sample(0.0) == ((0, 100, 200), 40)


async def test_player_runs_scene_to_the_end():
    frames = []

    async def sink(color, brightness):
        frames.append((color, brightness))

    player = ScenePlayer(sink, frame_rate=50)
    scene = Scene(
        id="short",
        name="Short",
        keyframes=(Keyframe(0.0, BLACK, 80), Keyframe(0.2, ORANGE, 80)),
        duration=0.2,
    )

    player.play(scene)
    assert player.playing
    await asyncio.sleep(0.5)

    assert not player.playing
    assert frames[0] == (BLACK, 80)
    assert all(brightness is None for _, brightness in frames[1:])
    assert frames[-1] == (ORANGE, None)


async def test_player_stop():
    frames = []

    async def sink(color, brightness):
        frames.append(color)

    player = ScenePlayer(sink, frame_rate=50)
    player.play(BUILTIN_SCENES["rainbow"])
    await asyncio.sleep(0.05)
    await player.async_stop()
    count = len(frames)

    await asyncio.sleep(0.1)

    assert not player.playing
    assert player.scene is None
    assert len(frames) == count
    player.stop()
