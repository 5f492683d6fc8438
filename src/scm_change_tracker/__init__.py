"""バージョン管理システムの変更検出と履歴正規化."""

__version__ = "0.1.0"
