import importlib.util
import json
from pathlib import Path

from expense_tracker import config
from expense_tracker.storage import LocalStorageService

from conftest import make_expense

SCRIPT_PATH = Path(__file__).resolve().parents[1] / 'scripts' / 'export_backup.py'


def _load_script():
    spec = importlib.util.spec_from_file_location('export_backup_test', SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_export_backup_writes_envelope(tmp_path, monkeypatch):
    monkeypatch.setattr(config, 'LOCAL_STORAGE_DIR', tmp_path / 'local')
    LocalStorageService(tmp_path / 'local').save_expenses(
        [make_expense('1', 5.0, 'Tea', 'food', '2024-03-01')]
    )
    module = _load_script()
    target = module.export_backup('local', tmp_path / 'exports')
    document = json.loads(target.read_text(encoding='utf-8'))
    assert target.parent == tmp_path / 'exports'
    assert [e['id'] for e in document['expenses']] == ['1']
    assert document['version'] == config.EXPORT_VERSION


def test_main_reports_success(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path)
    monkeypatch.setattr(config, 'LOCAL_STORAGE_DIR', tmp_path / 'local')
    monkeypatch.setattr(config, 'EXPORTS_DIR', tmp_path / 'exports')
    module = _load_script()
    assert module.main(['--backend', 'local', '--output-dir', str(tmp_path)]) == 0
    assert 'Export written to' in capsys.readouterr().out
    assert (tmp_path / 'local').is_dir()
