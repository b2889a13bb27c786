"""
Services package initialization.
Business logic layer for the wire ledger: catalog, inventory ledger, pricing, bookkeeping.
"""

from .errors import (
    LedgerError,
    ValidationFailed,
    DuplicateKey,
    NotFound,
    InsufficientInventory,
    PriceNotFound,
)
from .catalog_service import (
    VendorService,
    ItemService,
    VendorItemPriceService,
    UserService,
)
from .ledger_service import (
    Availability,
    TransactionService,
    LedgerQueryService,
    availability,
    check_admissible,
    get_next_sequence,
)
from .pricing_service import (
    PriceChartService,
    ResolvedPrice,
    resolve_price,
)
from .bookkeeping_service import (
    PaymentService,
    PrintStatusService,
    VendorRecordService,
)
from .attachments import AttachmentStore, StoredFile

__all__ = [
    'LedgerError',
    'ValidationFailed',
    'DuplicateKey',
    'NotFound',
    'InsufficientInventory',
    'PriceNotFound',
    'VendorService',
    'ItemService',
    'VendorItemPriceService',
    'UserService',
    'Availability',
    'TransactionService',
    'LedgerQueryService',
    'availability',
    'check_admissible',
    'get_next_sequence',
    'PriceChartService',
    'ResolvedPrice',
    'resolve_price',
    'PaymentService',
    'PrintStatusService',
    'VendorRecordService',
    'AttachmentStore',
    'StoredFile',
]
