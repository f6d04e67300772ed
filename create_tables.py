"""Task 서비스 테이블 생성 (동기 방식)

사용법:
    python create_tables.py           # 없는 테이블만 생성
    python create_tables.py --reset   # 기존 테이블 삭제 후 재생성
"""
import argparse

from sqlalchemy import create_engine

from taskhub.core.config import settings
from taskhub.core.database import Base
from taskhub import models  # noqa: F401  (모델 등록)


def sync_database_url(url: str) -> str:
    # 비동기 드라이버 -> 동기 드라이버 (pymysql)
    return url.replace("+aiomysql", "+pymysql")


def main():
    parser = argparse.ArgumentParser(description="Create taskhub tables")
    parser.add_argument("--reset", action="store_true", help="drop existing tables first")
    args = parser.parse_args()

    engine = create_engine(sync_database_url(settings.DATABASE_URL), echo=True)

    print("Creating Task tables...")
    if args.reset:
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("Task tables created!")


if __name__ == "__main__":
    main()
