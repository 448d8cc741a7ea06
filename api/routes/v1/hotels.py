"""
api/routes/v1/hotels.py -- Hotel lookup and hotel-scoped access checks.

Routes:
  GET  /hotels/{hotel_id}              -- public hotel info (valid id required)
  GET  /hotels/{hotel_id}/admin-access -- admin authorized for the path hotel
  POST /hotels/admin-access            -- admin authorized for body/query hotelId,
                                          or their own hotel when none is given
  GET  /hotels/{hotel_id}/guest-access -- guest authorized for the path hotel
  POST /hotels/guest-access            -- guest authorized for body/query hotelId

The access routes are what frontends call before showing hotel-scoped
screens (order history, menu management). A guest earns access to a hotel by
ordering there; an admin has access to the hotel they belong to.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from api.models import AdminHotelAccessResponse, GuestHotelAccessResponse, HotelInfo, HotelResponse
from auth.dependencies import admin_hotel_scope, get_identity_store, guest_hotel_scope, hotel_id_param
from auth.models import HotelScope
from auth.store import IdentityStore

# Auth policy:
# - GET  /hotels/{hotel_id}:              public -- menu pages need hotel context before login
# - GET  /hotels/{hotel_id}/admin-access: requires admin token + membership (admin_hotel_scope)
# - POST /hotels/admin-access:            requires admin token + membership (admin_hotel_scope)
# - GET  /hotels/{hotel_id}/guest-access: requires guest token + an order at the hotel (guest_hotel_scope)
# - POST /hotels/guest-access:            requires guest token + an order at the hotel (guest_hotel_scope)
router = APIRouter()


@router.post("/hotels/admin-access", response_model=AdminHotelAccessResponse)
@router.get("/hotels/{hotel_id}/admin-access", response_model=AdminHotelAccessResponse)
async def admin_hotel_access(scope: HotelScope = Depends(admin_hotel_scope)) -> AdminHotelAccessResponse:
    """Confirm the admin may act on the resolved hotel."""
    return AdminHotelAccessResponse(hotel_id=scope.hotel_id, admin_id=scope.principal.admin_id)


@router.post("/hotels/guest-access", response_model=GuestHotelAccessResponse)
@router.get("/hotels/{hotel_id}/guest-access", response_model=GuestHotelAccessResponse)
async def guest_hotel_access(scope: HotelScope = Depends(guest_hotel_scope)) -> GuestHotelAccessResponse:
    """Confirm the guest may see the resolved hotel's resources."""
    return GuestHotelAccessResponse(hotel_id=scope.hotel_id, guest_id=scope.principal.guest_id)


@router.get("/hotels/{hotel_id}", response_model=HotelResponse)
def get_hotel(
    requested_id: int = Depends(hotel_id_param),
    identity: IdentityStore = Depends(get_identity_store),
) -> HotelResponse:
    """Return public hotel details. 400 for a non-numeric id, 404 if unknown."""
    hotel = identity.get_hotel(requested_id)
    if hotel is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Hotel not found"})
    return HotelResponse(hotel=HotelInfo(id=hotel.id, name=hotel.name))
