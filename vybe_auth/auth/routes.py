from fastapi import APIRouter, Depends, Request, Response, status
from vybe_auth.auth.constants import logger
from vybe_auth.auth.dependencies import current_user
from vybe_auth.auth.models import AppleAuthIn, AuthenticatedUser, GoogleAuthIn, RefreshIn, SendCodeIn, VerifyCodeIn
from vybe_auth.common.utils import client_ip, success_response
from vybe_auth.rate_limiting.dependencies import auth_rate_limit, sms_rate_limit

auth_router = APIRouter()


def get_auth_service(request: Request):
    return request.app.state.auth_service


@auth_router.post("/phone/send-code", dependencies=[Depends(sms_rate_limit)])
async def send_phone_code(payload: SendCodeIn, auth_service=Depends(get_auth_service)):

    result = await auth_service.send_verification_code(payload.phone)
    return success_response(result, 200)


@auth_router.post("/phone/verify", dependencies=[Depends(auth_rate_limit)])
async def verify_phone_code(request: Request, payload: VerifyCodeIn, auth_service=Depends(get_auth_service)):

    logger.info("auth.phone.verify_attempt", extra={"phone": payload.phone})
    result = await auth_service.verify_phone_code(payload.phone, payload.code, payload.device_type, client_ip(request))
    return success_response(result.model_dump(by_alias=True), 200)


@auth_router.post("/google", dependencies=[Depends(auth_rate_limit)])
async def google_sign_in(request: Request, payload: GoogleAuthIn, auth_service=Depends(get_auth_service)):

    result = await auth_service.authenticate_with_google(payload.id_token, payload.device_type, client_ip(request))
    return success_response(result.model_dump(by_alias=True), 200)


@auth_router.post("/apple", dependencies=[Depends(auth_rate_limit)])
async def apple_sign_in(request: Request, payload: AppleAuthIn, auth_service=Depends(get_auth_service)):

    result = await auth_service.authenticate_with_apple(
        payload.identity_token, payload.device_type, client_ip(request), payload.full_name
    )
    return success_response(result.model_dump(by_alias=True), 200)


@auth_router.post("/refresh", dependencies=[Depends(auth_rate_limit)])
async def refresh_tokens(request: Request, payload: RefreshIn, auth_service=Depends(get_auth_service)):

    logger.info("auth.refresh.attempt")
    tokens = await auth_service.refresh(payload.refresh_token, client_ip(request))
    return success_response(tokens.model_dump(by_alias=True), 200)


@auth_router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(user: AuthenticatedUser = Depends(current_user), auth_service=Depends(get_auth_service)):

    await auth_service.logout(user.session_id)
    logger.info("auth.logout.success", extra={"user_id": user.user_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@auth_router.get("/me")
async def me(user: AuthenticatedUser = Depends(current_user)):
    return success_response(user.model_dump(by_alias=True), 200)
