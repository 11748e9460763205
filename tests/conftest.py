import pytest

from tests.helpers import make_noise, plant, save_png


@pytest.fixture
def fruit_scene(tmp_path):
    """48x40 noise scene with one 12x12 apple patch planted at (5, 4) and (30, 22)."""
    apple = make_noise(12, 12, seed=101)
    scene = make_noise(48, 40, seed=3)
    scene = plant(scene, apple, 5, 4)
    scene = plant(scene, apple, 30, 22)
    apple_path = save_png(apple, tmp_path / 'apple.png')
    scene_path = save_png(scene, tmp_path / 'scene.png')
    return {
        'scene': scene,
        'apple': apple,
        'apple_path': apple_path,
        'scene_path': scene_path,
        'dir': tmp_path,
    }
