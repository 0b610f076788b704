"""
Configuration constants for the file janitor.
"""

# --- Hashing & Performance ---
HASH_ALGORITHM = "sha256"
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB chunks for reading

# Pairs are scored in chunks so a worker handles many cheap comparisons per task
SIMILARITY_PAIR_CHUNK = 2048

# --- Duplicate Detection ---
SIMILARITY_THRESHOLD = 0.70
GROUPING_PAIRWISE = "pairwise"
GROUPING_COMPONENTS = "components"
GROUPING_MODES = (GROUPING_PAIRWISE, GROUPING_COMPONENTS)

# Name-quality scoring ("which copy looks like the original?")
NAME_WORD_PATTERN = r'[A-Za-z가-힣]{3,}'
NAME_COPY_MARKERS = ('copy', '복사', 'temp', '임시', 'backup', '백업')
NAME_GOOD_LENGTH = (10, 50)  # exclusive bounds

# Location-desirability scoring: (markers, score)
LOCATION_SCORES = [
    (('desktop', '바탕화면'), 10),
    (('documents', '문서'), 8),
    (('downloads', '다운로드'), 5),
    (('temp', '임시', 'trash', '휴지통'), -10),
]
LOCATION_DEPTH_BONUS = 10

# --- Cleanup Detection ---
TEMP_EXTS = {'tmp', 'temp', 'cache', 'bak', 'old'}
TEMP_FILENAMES = {
    'thumbs.db', '.ds_store', 'desktop.ini', 'folder.jpg', 'folder.png',
    'albumartsmall.jpg', 'albumart.jpg', 'ehthumbs.db', 'ehthumbs_vista.db',
}
TEMP_DIR_SEGMENTS = {'temp', 'tmp', 'temporary', 'recent', '.tmp'}
TEMP_DIR_PATHS = ('appdata/local/temp', 'application data/temp')

CACHE_MARKER = 'cache'
BROWSER_CACHE_PATHS = (
    'appdata/local/google/chrome/user data/default/cache',
    'appdata/local/mozilla/firefox/profiles',
    'appdata/local/microsoft/edge/user data/default/cache',
)

LOG_EXTS = {'log', 'txt'}
LOG_KEYWORDS = ('error', 'debug', 'trace')
LOG_FALSE_FRIENDS = ('catalog', 'dialog', 'blog', 'logo', 'login')
LOG_DATE_PATTERN = r'\d{4}-\d{2}-\d{2}'
LARGE_LOG_SIZE = 50 * 1024 * 1024  # 50 MB

INSTALLER_EXTS = {'exe', 'msi', 'dmg', 'pkg', 'deb', 'rpm', 'app'}
INSTALLER_HINTS = ('setup', 'install', '설치')
INSTALLER_MAX_AGE_DAYS = 30

BACKUP_EXTS = {'bak'}
BACKUP_MARKERS = ('backup', '백업', ' - copy', ' - 복사본')
BACKUP_PREFIXES = ('copy of',)

LARGE_FILE_SIZE = 100 * 1024 * 1024  # 100 MB
UNUSED_MAX_AGE_DAYS = 90
