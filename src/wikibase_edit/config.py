import re

# HTTP identity and base endpoints
HEADERS = {"User-Agent": "wikibase-edit/0.1 (https://www.wikidata.org/wiki/Wikidata:Bots)"}
API_ENDPOINT = "https://www.wikidata.org/w/api.php"
API_TIMEOUT = 30  # Seconds per HTTP request

# Site IRIs used as the namespace of entity ids
SITE_WIKIDATA = "http://www.wikidata.org/entity/"
SITE_WIKIMEDIA_COMMONS = "https://commons.wikimedia.org/entity/"
PLACEHOLDER_SITE_IRI = "http://localhost/entity/"

# Entity and statement id validation patterns
ITEM_ID_PATTERN = re.compile(r"^Q[1-9][0-9]*$")
PROPERTY_ID_PATTERN = re.compile(r"^P[1-9][0-9]*$")
LEXEME_ID_PATTERN = re.compile(r"^L[1-9][0-9]*$")
FORM_ID_PATTERN = re.compile(r"^L[1-9][0-9]*-F[1-9][0-9]*$")
SENSE_ID_PATTERN = re.compile(r"^L[1-9][0-9]*-S[1-9][0-9]*$")
MEDIAINFO_ID_PATTERN = re.compile(r"^M[1-9][0-9]*$")
STATEMENT_ID_PATTERN = re.compile(r"^[^$]+\$.+$")

# Maxlag throttling and edit budget defaults
MAXLAG = 5  # Seconds of replication lag tolerated by the server
MAXLAG_FIRST_WAIT_SECONDS = 1.0
MAXLAG_BACKOFF_FACTOR = 1.5
MAXLAG_MAX_RETRIES = 14  # Total attempts per edit, first one included
AVERAGE_TIME_PER_EDIT_SECONDS = 2.0  # 0 disables edit throttling
UNLIMITED_EDITS = -1

# Wire format constants
CALENDAR_GREGORIAN = "http://www.wikidata.org/entity/Q1985727"
GLOBE_EARTH = "http://www.wikidata.org/entity/Q2"
QUANTITY_UNIT_NONE = "1"
