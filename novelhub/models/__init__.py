"""
ORM models. Importing this package registers every table on Base.metadata.
"""
from novelhub.models.chapter import Chapter
from novelhub.models.content_mode import ContentMode
from novelhub.models.contribution_history import ContributionHistory, LedgerKind
from novelhub.models.module import Module
from novelhub.models.module_rental import ModuleRental
from novelhub.models.novel import Novel
from novelhub.models.novel_transaction import NovelTransaction, NovelTransactionType
from novelhub.models.user_wallet import UserWallet

__all__ = [
    "Chapter",
    "ContentMode",
    "ContributionHistory",
    "LedgerKind",
    "Module",
    "ModuleRental",
    "Novel",
    "NovelTransaction",
    "NovelTransactionType",
    "UserWallet",
]
