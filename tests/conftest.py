import copy
import sys

import pytest

from tuner_core import config
from tuner_core.parameters import PARAMETERS


# Stand-in for the clustering benchmark: reads the configuration given as
# first argument and writes the metrics file the configuration points to.
# Metric i is kappa / 100 + i. Optional settings steer failure modes:
# fakeLines (lines written), fakeExitCode, fakeSleep (seconds) and
# fakeNoise (print bytes that are not valid UTF-8).
FAKE_BENCHMARK = '''\
import sys
import time

settings = {}
with open(sys.argv[1]) as f:
    for line in f:
        key, sep, value = line.partition(":")
        if sep and value.strip():
            settings[key] = value.strip()

time.sleep(float(settings.get("fakeSleep", "0")))

if settings.get("fakeNoise"):
    sys.stdout.buffer.write(b"\\xff\\xfe progress\\n")
    sys.stderr.buffer.write(b"\\xff\\xfe warning\\n")
    sys.stdout.flush()
    sys.stderr.flush()

n_lines = int(settings.get("fakeLines", "11"))
kappa = float(settings["kappa"])
values = [kappa / 100.0 + i for i in range(11)]
with open(settings["clusteringOutputPath"], "w") as f:
    for value in values[:n_lines]:
        f.write(f"{value}\\n")
sys.exit(int(settings.get("fakeExitCode", "0")))
'''


def make_config_text(extra_lines=(), result_key=True):
    """Text of a benchmark configuration holding every catalog parameter."""
    lines = [
        "# Benchmark configuration",
        "inputPath:\t/data/ntuple_",
        "minNtuple:\t1",
        "maxNtuple:\t1",
        "",
    ]
    lines += [f"{d.title}:\t{d.start}" for d in PARAMETERS]
    if result_key:
        lines.append("clusteringOutputPath:\t/dev/null")
    lines += list(extra_lines)
    return "\n".join(lines) + "\n"


@pytest.fixture(autouse=True)
def restore_config():
    """Undo runtime changes made to the config module by a test."""
    saved = {name: copy.deepcopy(getattr(config, name)) for name in dir(config) if name.isupper()}
    yield
    for name, value in saved.items():
        setattr(config, name, value)


@pytest.fixture
def template_config(tmp_path):
    """A template configuration file for the fake benchmark."""
    path = tmp_path / "templates" / "autoGenConfig.md"
    path.parent.mkdir()
    path.write_text(make_config_text())
    return path


@pytest.fixture
def fake_benchmark(tmp_path):
    """Command list running the fake benchmark with the current interpreter."""
    script = tmp_path / "fake_benchmark.py"
    script.write_text(FAKE_BENCHMARK)
    return [sys.executable, str(script)]


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def config_text():
    """Factory building benchmark configuration text (see make_config_text)."""
    return make_config_text
