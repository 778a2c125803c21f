import logging
import re
from typing import Dict, List, Pattern

logger = logging.getLogger("mynest.patterns")

# Ordered groups: the classifier checks video, then audio, then image.
VIDEO_URL_PATTERNS: Dict[str, str] = {
    'video_extension': r'\.(?:mp4|webm|ogg|mov|avi|wmv|flv|mkv|m4v|3gp|ts)(?:[?#]|$)',
    'video_substring': r'video',
    'hls_manifest': r'\.m3u8',
    'dash_manifest': r'\.mpd',
}

AUDIO_URL_PATTERNS: Dict[str, str] = {
    'audio_extension': r'\.(?:mp3|wav|ogg|aac|m4a|flac|wma)(?:[?#]|$)',
    'audio_substring': r'audio',
}

IMAGE_URL_PATTERNS: Dict[str, str] = {
    'image_extension': r'\.(?:jpg|jpeg|png|gif|webp|bmp|svg|ico|avif)(?:[?#]|$)',
    'image_substring': r'image',
}

# Known video CDNs and streaming hosts. Extend here, not in pipeline code.
VIDEO_PLATFORM_HOST_PATTERNS: Dict[str, str] = {
    'douyin_vod': r'v[0-9]+-\w+\.douyinvod\.com',
    'douyin_static': r'v[0-9]+\.douyinstatic\.com',
    'youtube_googlevideo': r'googlevideo\.com',
    'twitter_video': r'video\.twimg\.com',
    'bilibili_video': r'bilivideo\.(?:com|cn)',
}

# Stricter check applied to URLs pulled out of script text.
STRICT_VIDEO_URL_PATTERNS: Dict[str, str] = {
    'video_extension': r'\.(?:mp4|webm|ogg|mov|avi|wmv|flv|mkv|m4v|3gp|ts)(?:[?#]|$)',
    'hls_manifest': r'\.m3u8',
    'dash_manifest': r'\.mpd',
    'douyin_vod': r'douyinvod\.com',
    'douyin_static': r'douyinstatic\.com',
    'douyin_aweme': r'aweme\.snssdk\.com',
}

INITIATOR_TYPE_HINTS: Dict[str, str] = {
    'img': 'image',
    'video': 'video',
    'audio': 'audio',
}

# Every quantifier is bounded so a hostile inline script cannot trigger
# runaway backtracking. Lazy URL bodies end at any colon that is not a port
# separator, so one failed start never scans past the next scheme.
_URL_HEAD = r'https?:(?:\\?/){2}'
_URL_TAIL = r'[^"\'\s<>()`]'
_URL_BODY = r'(?:[^"\'\s<>()`:]|:(?=\d))'

SCRIPT_URL_PATTERNS: Dict[str, str] = {
    'extension_url': _URL_HEAD + _URL_BODY + r'{1,2048}?\.(?:mp4|m3u8|flv)' + _URL_TAIL + r'{0,2048}',
    'douyin_vod_url': _URL_HEAD + r'v[0-9]{1,4}-\w{1,32}\.douyinvod\.com' + _URL_TAIL + r'{0,2048}',
    'douyin_static_url': _URL_HEAD + r'v[0-9]{1,4}\.douyinstatic\.com' + _URL_TAIL + r'{0,2048}',
    'douyin_aweme_url': _URL_HEAD + r'aweme\.snssdk\.com' + _URL_TAIL + r'{1,2048}',
    'video_url_key': r'video_?url["\']?\s{0,8}[:=]\s{0,8}["\']([^"\']{1,2048})["\']',
    'play_addr_key': r'playAddr["\']?\s{0,8}[:=]\s{0,8}["\']([^"\']{1,2048})["\']',
    'play_url_key': r'play_?url["\']?\s{0,8}[:=]\s{0,8}["\']([^"\']{1,2048})["\']',
    'hls_url_key': r'hls_?url["\']?\s{0,8}[:=]\s{0,8}["\']([^"\']{1,2048})["\']',
    'content_url_key': r'contentUrl["\']?\s{0,8}[:=]\s{0,8}["\']([^"\']{1,2048})["\']',
    'play_addr_url_list': (
        r'play_addr["\']?\s{0,8}[:=]\s{0,8}\{[^{}]{0,4096}?["\']url_list["\']?\s{0,8}:\s{0,8}'
        r'\[\s{0,8}["\']([^"\']{1,2048})["\']'
    ),
    'src_key': r'src["\']?\s{0,8}[:=]\s{0,8}["\'](' + _URL_HEAD + r'(?:[^"\':]|:(?=\d)){1,2048}?\.(?:mp4|m3u8|flv)[^"\']{0,2048})["\']',
}

# Lazy-load attributes checked after the element's own src.
IMAGE_SOURCE_ATTRIBUTES: List[str] = ['data-src', 'data-original', 'data-lazy-src']
MEDIA_SOURCE_ATTRIBUTES: List[str] = ['data-src']

# Attributes that may hold the original URL behind a blob: video source.
BLOB_RECOVERY_ATTRIBUTES: List[str] = ['data-url', 'data-video-url', 'data-original-src']

CUSTOM_VIDEO_ATTRIBUTES: List[str] = ['data-video-url', 'data-video-src', 'data-stream-url']

CSS_URL_PATTERN = r'url\(\s{0,8}["\']?([^"\')]{1,4096}?)["\']?\s{0,8}\)'
CSS_BACKGROUND_DECLARATION = r'background(?:-image)?\s{0,8}:\s{0,8}([^;}]{1,4096})'


def compile_patterns(patterns_dict: Dict[str, str], flags: int = re.IGNORECASE) -> Dict[str, Pattern]:
    compiled = {}
    for name, pattern in patterns_dict.items():
        try:
            compiled[name] = re.compile(pattern, flags)
        except re.error as e:
            logger.warning(f"Invalid pattern '{name}': {e}")
            continue
    return compiled

VIDEO_URL_PATTERNS_COMPILED = compile_patterns(VIDEO_URL_PATTERNS)
AUDIO_URL_PATTERNS_COMPILED = compile_patterns(AUDIO_URL_PATTERNS)
IMAGE_URL_PATTERNS_COMPILED = compile_patterns(IMAGE_URL_PATTERNS)
VIDEO_PLATFORM_HOST_PATTERNS_COMPILED = compile_patterns(VIDEO_PLATFORM_HOST_PATTERNS)
STRICT_VIDEO_URL_PATTERNS_COMPILED = compile_patterns(STRICT_VIDEO_URL_PATTERNS)
SCRIPT_URL_PATTERNS_COMPILED = compile_patterns(SCRIPT_URL_PATTERNS)
CSS_URL_PATTERN_COMPILED = re.compile(CSS_URL_PATTERN, re.IGNORECASE)
CSS_BACKGROUND_DECLARATION_COMPILED = re.compile(CSS_BACKGROUND_DECLARATION, re.IGNORECASE)
