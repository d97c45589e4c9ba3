"""Tests for the command line runner."""

import json

from inventory_loader import load_mods_csv, write_mods_csv
from optimizer_cli import main
from conftest import full_set


def write_run(tmp_path, mods, threshold=0):
    write_mods_csv(tmp_path / 'mods.csv', mods)
    path = tmp_path / 'run.json'
    path.write_text(json.dumps({
        'threshold': threshold,
        'mods_csv': 'mods.csv',
        'characters': [{'base_id': 'HERO', 'weights': {'speed': 1}, 'advanced': True}],
    }), encoding='utf-8')
    return path


class TestOptimizerCli:

    def test_run_and_write_output(self, tmp_path, capsys):
        mods = full_set('old', owner='HERO', speed=5) + full_set('new', speed=9)
        run_file = write_run(tmp_path, mods)
        output = tmp_path / 'result.csv'

        assert main([str(run_file), '--quiet', '--output', str(output)]) == 0
        assert '12 mods need to be moved' in capsys.readouterr().out

        owners = {mod.id: mod.owner for mod in load_mods_csv(output)}
        assert owners['new-square'] == 'HERO'
        assert owners['old-square'] is None

    def test_threshold_override(self, tmp_path, capsys):
        mods = full_set('old', owner='HERO', speed=5) + full_set('new', speed=9)
        run_file = write_run(tmp_path, mods)

        assert main([str(run_file), '--quiet', '--threshold', '100']) == 0
        assert '0 mods need to be moved' in capsys.readouterr().out

    def test_integrity_violation_exits_1(self, tmp_path):
        mods = full_set('dup', speed=5) + full_set('dup', speed=6)
        run_file = write_run(tmp_path, mods)
        assert main([str(run_file), '--quiet']) == 1
