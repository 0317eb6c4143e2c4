#!/usr/bin/env python3
"""
孤儿图片清理工具

删除上传目录中没有任何商品引用的图片文件。
刚上传的文件（小于 grace 时间）不会被删除，避免误删进行中的请求。

Usage:
    cd backend
    python tools/reap_orphans.py --dry-run
    python tools/reap_orphans.py --grace-minutes 120
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# 添加 backend 目录到路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Config  # noqa: E402
from storefront import configure_logging, create_app  # noqa: E402


def reap(app, grace_minutes: int, dry_run: bool = False):
    """Run the reaper inside the app context; returns the affected references."""
    with app.app_context():
        service = app.extensions['storefront'].products
        return service.reap_orphans(grace=timedelta(minutes=grace_minutes), dry_run=dry_run)


def main(argv=None):
    parser = argparse.ArgumentParser(description="清理未被商品引用的上传图片")
    parser.add_argument(
        '--grace-minutes',
        type=int,
        default=Config.ORPHAN_GRACE_MINUTES,
        help='跳过最近 N 分钟内上传的文件 (默认: %(default)s)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='只列出孤儿文件，不删除'
    )
    args = parser.parse_args(argv)

    configure_logging(Config.LOG_LEVEL)
    app = create_app()
    affected = reap(app, args.grace_minutes, dry_run=args.dry_run)

    label = '孤儿文件' if args.dry_run else '已删除'
    print(f"{label}: {len(affected)}")
    for reference in affected:
        print(f"  - {reference}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
