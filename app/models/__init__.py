# Import every model so Base.metadata is complete for create_all / alembic.
from app.models.opportunity import Opportunity  # noqa: F401
from app.models.assignment import Assignment  # noqa: F401
from app.models.feedback import FeedbackRecord  # noqa: F401
