import json

from fruit_detector.cli import main


def test_cli_prints_matches_and_total(fruit_scene, capsys):
    exit_code = main(
        [
            str(fruit_scene['scene_path']),
            '--template',
            f"{fruit_scene['apple_path']}:Apple",
            '--scorer',
            'numpy',
        ]
    )

    out = capsys.readouterr().out.splitlines()
    assert exit_code == 0
    assert out[-1] == 'Detected objects: 2'
    assert all(line.startswith('Detected: Apple at (') for line in out[:-1])


def test_cli_uses_manifest_and_writes_output(fruit_scene, capsys):
    manifest = fruit_scene['dir'] / 'manifest.json'
    manifest.write_text(
        json.dumps([{'path': 'apple.png', 'label': 'Apple'}, {'path': 'banana.png', 'label': 'Banana'}]),
        encoding='utf-8',
    )
    output = fruit_scene['dir'] / 'annotated.png'

    exit_code = main(
        [str(fruit_scene['scene_path']), '--manifest', str(manifest), '--scorer', 'numpy', '--output', str(output)]
    )

    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out.splitlines()[-1] == 'Detected objects: 2'
    assert 'Skipped template' in captured.err
    assert output.exists()


def test_cli_missing_source_fails(tmp_path, fruit_scene):
    exit_code = main([str(tmp_path / 'nope.png'), '--template', f"{fruit_scene['apple_path']}:Apple"])

    assert exit_code == 1


def test_cli_without_templates_fails(tmp_path, fruit_scene):
    exit_code = main([str(fruit_scene['scene_path']), '--manifest', str(tmp_path / 'none.json')])

    assert exit_code == 2
