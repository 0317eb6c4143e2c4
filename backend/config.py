import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# backend/ 目录
BACKEND_ROOT = Path(__file__).parent


class Config:
    """应用配置"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'storefront-secret-key-2024')

    # MongoDB 配置
    MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/storefront')

    # API 配置
    API_PREFIX = '/api/v1'

    # CORS allowlist (comma-separated origins)
    # Example:
    # CORS_ALLOWED_ORIGINS=https://shop.example.com,https://admin.example.com
    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ALLOWED_ORIGINS', '').split(',')
        if origin.strip()
    ]

    # Flask 环境
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Session token settings
    # JWT_EXPIRES_IN: token lifetime in seconds, also used as cookie max-age
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'change-me-in-production')
    JWT_EXPIRES_IN = int(os.getenv('JWT_EXPIRES_IN', '3600'))
    BCRYPT_ROUNDS = int(os.getenv('BCRYPT_ROUNDS', '12'))

    # 图片上传
    # Stored files are served back under /uploads/images/<name>
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', str(BACKEND_ROOT / 'uploads' / 'images'))
    MAX_IMAGES_PER_PRODUCT = int(os.getenv('MAX_IMAGES_PER_PRODUCT', '5'))
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_UPLOAD_SIZE_MB', '16')) * 1024 * 1024

    # Unreferenced uploads younger than this are left alone by the reaper
    ORPHAN_GRACE_MINUTES = int(os.getenv('ORPHAN_GRACE_MINUTES', '60'))
