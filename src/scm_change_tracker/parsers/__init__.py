"""バージョン管理クライアントごとの履歴パーサ群."""

from .alienbrain_parser import Alienbrain_HistoryParser
from .base_parser import BaseHistoryParser
from .bitkeeper_parser import BitKeeper_HistoryParser
from .clearcase_parser import ClearCase_HistoryParser
from .cvs_parser import CVS_HistoryParser
from .mks_parser import MKS_HistoryParser
from .pvcs_parser import PVCS_HistoryParser
from .starteam_parser import StarTeam_HistoryParser
from .svn_parser import SVN_HistoryParser
from .vault_parser import Vault_HistoryParser
from .vss_parser import ENGLISH_KEYWORDS, VSS_HistoryParser, VssKeywords

# CLI の `parse` サブコマンドで使う名前 → パーサクラス
PARSERS: dict[str, type[BaseHistoryParser]] = {
    "alienbrain": Alienbrain_HistoryParser,
    "bitkeeper": BitKeeper_HistoryParser,
    "clearcase": ClearCase_HistoryParser,
    "cvs": CVS_HistoryParser,
    "mks": MKS_HistoryParser,
    "pvcs": PVCS_HistoryParser,
    "starteam": StarTeam_HistoryParser,
    "svn": SVN_HistoryParser,
    "vault": Vault_HistoryParser,
    "vss": VSS_HistoryParser,
}

__all__ = [
    "BaseHistoryParser",
    "Alienbrain_HistoryParser",
    "BitKeeper_HistoryParser",
    "ClearCase_HistoryParser",
    "CVS_HistoryParser",
    "MKS_HistoryParser",
    "PVCS_HistoryParser",
    "StarTeam_HistoryParser",
    "SVN_HistoryParser",
    "Vault_HistoryParser",
    "VSS_HistoryParser",
    "VssKeywords",
    "ENGLISH_KEYWORDS",
    "PARSERS",
]
