from enum import Enum


class SourceTag(str, Enum):
    MIGU = "migu"
    MIGU_EMBEDDED = "migu_embedded"
    PLAYLIST = "playlist"
    DOUYIN_REPLAY = "douyin_replay"


class MatchStatus(str, Enum):
    NOT_STARTED = "0"
    LIVE = "1"
    FINISHED = "2"


class Category(str, Enum):
    FOOTBALL = "1"
    BASKETBALL = "2"
    TENNIS = "3"
    VOLLEYBALL = "4"
    COMBAT = "5"
    BADMINTON = "6"
    TABLE_TENNIS = "7"
    BILLIARDS = "8"
    ATHLETICS = "9"
    ESPORTS = "10"


class IdentityPolicy(str, Enum):
    COMPOSITE = "composite"  # verbatim key, unique within one run
    DIGEST = "digest"  # md5 prefix, stable across runs
