from funnel_builder.models.funnel import Funnel
from funnel_builder.utils.transaction import transactional


def record_view(*, funnel: Funnel) -> Funnel:
    with transactional():
        funnel.increment_views()
    return funnel


def record_conversion(*, funnel: Funnel) -> Funnel:
    with transactional():
        funnel.increment_conversions()
    return funnel
