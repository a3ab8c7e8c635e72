"""Shared fixtures: tile paths and in-memory stand-ins for the host and executor."""

import os

import pytest

from l3b_planner.errors import CatalogueInsertFailed
from l3b_planner.tiles.tile_info import Satellite


def s2_tile(root, tile_id, day):
    """Create an empty MACCS S2 header for *tile_id* acquired on *day* (YYYYMMDD)."""
    path = os.path.join(str(root), "inputs", f"S2A_OPER_SSC_L2VALD_{tile_id}____{day}.HDR")
    os.makedirs(os.path.dirname(path), exist_ok=True)
    open(path, "w").close()
    return path


def l8_tile(root, tile_id, day):
    path = os.path.join(str(root), "inputs", f"L8_TEST_L8C_L2VALD_{tile_id}_{day}.HDR")
    os.makedirs(os.path.dirname(path), exist_ok=True)
    open(path, "w").close()
    return path


class RecordingGateway:
    """Executor stand-in that hands out ids 100, 101, ... and records every call."""

    def __init__(self, fail_on_register=None):
        self.registered = []  # (task_id, job_id, module, parent_ids)
        self.steps = []
        self.cancelled = []
        self.fail_on_register = fail_on_register
        self._next = 100

    def register_task(self, job_id, module, parent_ids):
        if self.fail_on_register is not None and module == self.fail_on_register:
            raise RuntimeError("executor connection refused")
        task_id = self._next
        self._next += 1
        self.registered.append((task_id, job_id, module, list(parent_ids)))
        return task_id

    def submit_steps(self, steps):
        self.steps.extend(steps)

    def cancel_task(self, task_id):
        self.cancelled.append(task_id)

    def cancel_job(self, job_id):
        self.cancelled.append(("job", job_id))

    def modules(self):
        return [r[2] for r in self.registered]


class FakeContext:
    """Processing context kept in memory; records every outbound call."""

    def __init__(self, scratch_root, cfg=None, product_tiles=None, site_tiles=None):
        self.scratch_root = str(scratch_root)
        self.cfg = dict(cfg or {})
        self.product_tiles = dict(product_tiles or {})
        self.site_tiles = dict(site_tiles or {})
        self.failed = []
        self.finished = []
        self.inserted = []
        self.submitted_jobs = []
        self.insert_error = None

    def get_job_configuration_parameters(self, job_id, prefix):
        return {k: v for k, v in self.cfg.items() if k.startswith(prefix)}

    def get_input_product_tiles(self, event):
        return self.product_tiles

    def get_site_tiles(self, site_id):
        return self.site_tiles

    def get_scratch_root(self):
        return self.scratch_root

    def get_final_product_folder(self, site_id):
        return os.path.join(self.scratch_root, "products", str(site_id), "l3b")

    def mark_job_failed(self, job_id):
        self.failed.append(job_id)

    def mark_job_finished(self, job_id):
        self.finished.append(job_id)

    def insert_product(self, record):
        if self.insert_error:
            raise CatalogueInsertFailed(self.insert_error)
        self.inserted.append(record)
        return len(self.inserted)

    def submit_job(self, job):
        self.submitted_jobs.append(job)
        return 1000 + len(self.submitted_jobs)


@pytest.fixture
def lai_cfg():
    """Site config with mono-date LAI on and only LAI produced."""
    return {
        "processor.l3b.mono_date_lai": "1",
        "processor.l3b.lai.produce_lai": "1",
        "processor.l3b.lai.laibandscfgfile": "/cfg/lai_bands.cfg",
        "processor.l3b.remove_temp_files": "0",
    }


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def make_context(tmp_path):
    def _make(**kwargs):
        return FakeContext(tmp_path / "scratch", **kwargs)
    return _make


@pytest.fixture
def site_tiles():
    return {Satellite.S2: ["31UDP", "30TYT"], Satellite.L8: ["196030"]}


@pytest.fixture
def make_tile(tmp_path):
    """Factory: ``make_tile("31UDP", "20170410")`` -> path of an S2 (or L8) header."""
    def _make(tile_id, day, satellite="S2"):
        if satellite == "L8":
            return l8_tile(tmp_path, tile_id, day)
        return s2_tile(tmp_path, tile_id, day)
    return _make


@pytest.fixture
def make_gateway():
    return RecordingGateway
