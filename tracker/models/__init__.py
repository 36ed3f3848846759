from .candidate import Candidate
from .offer import Offer
from .notification import Notification
from .cohort import Cohort
