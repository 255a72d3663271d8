from expense_tracker import config


def test_ensure_data_directories_creates_tree(tmp_path, monkeypatch):
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path / 'data')
    monkeypatch.setattr(config, 'LOCAL_STORAGE_DIR', tmp_path / 'data' / 'local_storage')
    monkeypatch.setattr(config, 'EXPORTS_DIR', tmp_path / 'data' / 'exports')
    config.ensure_data_directories()
    assert (tmp_path / 'data' / 'local_storage').is_dir()
    assert (tmp_path / 'data' / 'exports').is_dir()


def test_pagination_defaults_are_consistent():
    options = config.PAGINATION['page_size_options']
    assert config.PAGINATION['default_page_size'] in options
    assert max(options) <= config.PAGINATION['max_page_size']
