import stat
from pathlib import Path

import pytest

SAMPLE_OUTPUT = (
    "corrupt-packets=0,dnsupdate-answers=2,dnsupdate-changes=1,"
    "dnsupdate-queries=3,dnsupdate-refused=0,latency=12,packetcache-hit=100,"
    "packetcache-miss=20,packetcache-size=7,qsize-q=0,real-memory-usage=52428800,"
    "tcp-answers=4,udp-answers=90,udp4-answers=60,udp6-answers=30,"
    "uptime=3600,user-msec=1500,sys-msec=300,\n"
)


def write_command(directory: Path, output: str, status: int = 0) -> Path:
    """Create an executable that mimics ``pdns_control show *``."""
    (directory / "output.txt").write_text(output)
    script = directory / "pdns_control"
    script.write_text(
        "#!/bin/sh\n"
        'if [ "$1" != "show" ] || [ "$2" != "*" ]; then\n'
        '    echo "unexpected arguments: $*" >&2\n'
        "    exit 64\n"
        "fi\n"
        f'cat "{directory / "output.txt"}"\n'
        f"exit {status}\n"
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def control_command(tmp_path):
    def factory(output: str = SAMPLE_OUTPUT, status: int = 0) -> str:
        return str(write_command(tmp_path, output, status))

    return factory


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'state' / 'samples.db'}"
