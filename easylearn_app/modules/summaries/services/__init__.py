from .summary_service import SummaryService

__all__ = ['SummaryService']
