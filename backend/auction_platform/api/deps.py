from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auction_platform.core.jwt import TokenData, decode_access_token
from auction_platform.core.mail import MailTransport
from auction_platform.services.notification_service import EmailNotifier, Notifier
from auction_platform.tasks.auction_closer import AuctionSweepScheduler

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenData:
    """Identify the caller from the bearer JWT issued by the auth service"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Please log in.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token_data


def get_notifier() -> Notifier:
    return EmailNotifier(MailTransport.from_settings())


def get_auction_scheduler(request: Request) -> AuctionSweepScheduler:
    scheduler = getattr(request.app.state, "auction_scheduler", None)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auction scheduler is not initialized",
        )
    return scheduler
