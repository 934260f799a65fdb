import logging

from assisted.logging.log import init_logging, log_path_for


def test_log_lands_in_cluster_directory(tmp_path):
    logger, run_id, path = init_logging(cluster_id="c1", base_dir=tmp_path)
    logger.info("waiting for hosts")
    for h in logger.handlers:
        h.flush()

    assert path.parent == tmp_path / "c1"
    assert run_id in path.name
    line = [l for l in path.read_text().splitlines() if "waiting for hosts" in l][0]
    assert f"{run_id[:8]} c1 |" in line


def test_file_gets_debug_console_gets_info(tmp_path):
    run_log = init_logging(cluster_id="c1", base_dir=tmp_path)
    levels = {type(h): h.level for h in run_log.logger.handlers}
    assert levels[logging.FileHandler] == logging.DEBUG
    assert levels[logging.StreamHandler] == logging.INFO
    assert run_log.logger.propagate is False


def test_reinit_replaces_handlers(tmp_path):
    init_logging(cluster_id="c1", base_dir=tmp_path)
    run_log = init_logging(cluster_id="c1", base_dir=tmp_path, verbose=True)
    assert len(run_log.logger.handlers) == 2


def test_unsafe_cluster_ids_stay_under_base_dir(tmp_path):
    assert log_path_for(tmp_path, "../../etc", "r").parent.parent == tmp_path
    assert log_path_for(tmp_path, None, "r").parent == tmp_path / "_adhoc"
    assert log_path_for(tmp_path, "..", "r").parent == tmp_path / "_adhoc"
