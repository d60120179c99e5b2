from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from aerodeliver import crud, mailer, schemas
from aerodeliver.database import get_db

router = APIRouter()

SEND_FAILED = "Failed to send message. Please try again later."


@router.post("/contact", response_model=schemas.SendResponse)
def send_contact(contact: schemas.ContactMessage, db: Session = Depends(get_db)):
    pilot_email = pilot_name = None
    if contact.order_id:
        order = crud.get_order(db, order_id=contact.order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        pilot_email, pilot_name = order.owner_email, order.owner_name
    topic = contact.topic or (f"Order #{contact.order_id}" if contact.order_id else "General Inquiry")
    try:
        result = mailer.send_contact_message(
            contact.name,
            contact.email,
            topic,
            contact.message,
            order_id=contact.order_id,
            pilot_email=pilot_email,
            pilot_name=pilot_name,
        )
    except mailer.MailerError:
        raise HTTPException(status_code=502, detail=SEND_FAILED)
    return {"sent": True, "simulated": result.simulated}


@router.post("/support", response_model=schemas.SendResponse)
def send_support(support: schemas.SupportMessage):
    try:
        result = mailer.send_support_message(support.name, support.email, support.subject, support.message)
    except mailer.MailerError:
        raise HTTPException(status_code=502, detail=SEND_FAILED)
    return {"sent": True, "simulated": result.simulated}
