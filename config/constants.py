from typing import Dict

__version__ = "1.0.0"

DEFAULT_CONFIG = {
    'request_timeout': 15,
    'max_retries': 2,
    'size_probe_timeout': 5.0,
    'size_workers': 8,
    'max_html_bytes': 5 * 1024 * 1024,
    'headless': False,
    'headless_timeout_ms': 30_000,
    'settle_ms': 1500,
    'thumbnails': False,
    'max_thumbnails': 3,
    'thumbnail_timeout': 2.0,
    'allow_blob': False,
    'default_output_format': 'tsv',
    'user_agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36',
    'default_headers': {
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
        'Accept-Encoding': 'gzip, deflate',
        'DNT': '1',
        'Connection': 'keep-alive',
        'Upgrade-Insecure-Requests': '1',
        'Sec-Fetch-Dest': 'document',
        'Sec-Fetch-Mode': 'navigate',
        'Sec-Fetch-Site': 'none',
    }
}

SNIFF_LIMITS = {
    'max_script_bytes': 512 * 1024,
    'max_matches_per_pattern': 200,
    'max_url_length': 4096,
    'max_elements': 20000,
    'max_size_workers': 32,
}

HTTP_CONFIG = {
    'retry_status_codes': [408, 425, 429, 500, 502, 503, 504],
    'retry_backoff_factor': 0.6,
    'pool_connections': 16,
    'pool_maxsize': 32,
}

THUMBNAIL_CONFIG = {
    'max_width': 320,
    'max_height': 180,
    'quality': 0.7,
    'seek_seconds': 1.0,
    'seek_ratio': 0.1,
    'mime_type': 'image/jpeg',
}

MYNEST_CONFIG = {
    'download_path': '/api/v1/download',
    'health_path': '/health',
    'plugin_name': 'chrome-extension',
    'default_category': 'browser',
    'request_timeout': 15,
}

SNIFF_ACTION = 'sniffMediaResources'
THUMBNAIL_ACTION = 'thumbnailUpdated'

EXIT_CODES = {
    'SUCCESS': 0,
    'USAGE_ERROR': 1,
    'NETWORK_ERROR': 2,
    'CONFIG_ERROR': 3,
    'PAGE_UNREACHABLE': 4,
    'API_ERROR': 5,
    'UNKNOWN_ERROR': 255
}

ENV_VARS = {
    'MYNEST_API_URL': 'api_url',
    'MYNEST_API_TOKEN': 'api_token',
    'MYNEST_CATEGORY': 'default_category',
    'MYNEST_USER_AGENT': 'user_agent',
    'MYNEST_PROXY': 'proxy_url',
    'MYNEST_TIMEOUT': 'timeout',
    'MYNEST_LOG_LEVEL': 'log_level',
    'MYNEST_LOG_FILE': 'log_file',
}

def get_version() -> str:
    return __version__

def get_user_agent() -> str:
    return DEFAULT_CONFIG['user_agent']

def get_default_headers() -> Dict[str, str]:
    return DEFAULT_CONFIG['default_headers'].copy()

def is_valid_timeout(timeout: float) -> bool:
    return 1 <= timeout <= 300

def is_valid_worker_count(count: int) -> bool:
    return 1 <= count <= SNIFF_LIMITS['max_size_workers']

def is_valid_thumbnail_count(count: int) -> bool:
    """Thumbnail capture loads real video data, keep it small"""
    return 0 <= count <= 10
