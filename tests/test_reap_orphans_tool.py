"""Tests for tools/reap_orphans.py."""

import os
import sys
import time

from conftest import PROJECT_ROOT

sys.path.insert(0, os.path.join(PROJECT_ROOT, 'backend', 'tools'))

import reap_orphans  # noqa: E402


def _write(upload_dir, name, age_minutes):
    upload_dir.mkdir(parents=True, exist_ok=True)
    path = upload_dir / name
    path.write_bytes(b'png')
    stamp = time.time() - age_minutes * 60
    os.utime(path, (stamp, stamp))
    return path


def test_reaps_old_unreferenced_files(app, upload_dir, product_repo):
    referenced = _write(upload_dir, 'kept.png', age_minutes=600)
    stale = _write(upload_dir, 'stale.png', age_minutes=600)
    fresh = _write(upload_dir, 'fresh.png', age_minutes=1)
    product_repo.insert({
        'sku': 'P1', 'quantity': 1, 'price': 1.0, 'name': 'n', 'description': 'd',
        'images': ['/uploads/images/kept.png'], 'mainImage': '/uploads/images/kept.png',
    })

    reaped = reap_orphans.reap(app, grace_minutes=60)

    assert reaped == ['/uploads/images/stale.png']
    assert referenced.exists()
    assert fresh.exists()
    assert not stale.exists()


def test_dry_run_keeps_files(app, upload_dir):
    stale = _write(upload_dir, 'stale.png', age_minutes=600)
    assert reap_orphans.reap(app, grace_minutes=60, dry_run=True) == ['/uploads/images/stale.png']
    assert stale.exists()
