# Imported for side effects: registers every table on Base.metadata.
from app.features.auth.models.auth_challenge import AuthChallenge  # noqa: F401
from app.features.referral.models.referral import Referral  # noqa: F401
from app.features.tracking.models.tracking_event import TrackingEvent  # noqa: F401
from app.features.users.models.wallet_user import WalletUser  # noqa: F401
