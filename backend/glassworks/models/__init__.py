from .tenancy import Organization, TaxRate
from .catalog import GlassRate, ProcessDefinition
from .documents import (
    NumberSequence,
    Quote,
    QuoteLine,
    Order,
    OrderLine,
    Invoice,
    Payment,
    DOCUMENT_MODELS,
)

__all__ = [
    'Organization', 'TaxRate',
    'GlassRate', 'ProcessDefinition',
    'NumberSequence', 'Quote', 'QuoteLine', 'Order', 'OrderLine',
    'Invoice', 'Payment', 'DOCUMENT_MODELS',
]
