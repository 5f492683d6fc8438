"""バージョン管理クライアントごとのコネクタ群."""

from .alienbrain import AlienbrainSettings, AlienbrainSourceControl
from .base_connector import FilteredSourceControl, SourceControl
from .clearcase import ClearCaseSettings, ClearCaseSourceControl
from .cvs import CvsSettings, CvsSourceControl
from .ftp import FtpSettings, FtpSourceControl
from .mks import MksSettings, MksSourceControl
from .pvcs import PvcsSettings, PvcsSourceControl
from .starteam import StarTeamSettings, StarTeamSourceControl
from .svn import SvnSettings, SvnSourceControl
from .vault import VaultSettings, VaultSourceControl
from .vss import VssSettings, VssSourceControl

__all__ = [
    "SourceControl",
    "FilteredSourceControl",
    "AlienbrainSettings",
    "AlienbrainSourceControl",
    "ClearCaseSettings",
    "ClearCaseSourceControl",
    "CvsSettings",
    "CvsSourceControl",
    "FtpSettings",
    "FtpSourceControl",
    "MksSettings",
    "MksSourceControl",
    "PvcsSettings",
    "PvcsSourceControl",
    "StarTeamSettings",
    "StarTeamSourceControl",
    "SvnSettings",
    "SvnSourceControl",
    "VaultSettings",
    "VaultSourceControl",
    "VssSettings",
    "VssSourceControl",
]
