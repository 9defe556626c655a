from datetime import date

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# ============================================================================
# CATALOG (managed from the admin portal, read-only here)
# ============================================================================


class Location(Base):
    __tablename__ = "locations"

    loc_id = Column(String(100), primary_key=True)
    location_name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    parking_available = Column(String(1), default="N", nullable=False)  # Y/N
    new_flag = Column(String(1), default="N", nullable=False)  # Y/N - "new" badge
    public_flag = Column(String(1), default="Y", nullable=False)  # Y/N - listed on the site

    theaters = relationship("Theater", back_populates="location")


class Theater(Base):
    __tablename__ = "theaters"

    theater_id = Column(String(100), primary_key=True)
    loc_id = Column(String(100), ForeignKey("locations.loc_id"), nullable=False, index=True)
    theater_name = Column(String(255), nullable=False)
    theater_cost = Column(Numeric(10, 2), nullable=False, default=0)
    decoration_price = Column(Numeric(10, 2), nullable=False, default=0)
    per_persons = Column(Integer, nullable=True)  # Persons included in the base cost
    max_persons = Column(Integer, nullable=True)
    # Named time windows, e.g. ["10:00 AM - 01:00 PM", "01:30 PM - 04:30 PM"]
    slot_timings = Column(JSON, default=list, nullable=False)
    tag_lines = Column(JSON, default=list, nullable=True)
    gallery_image_urls = Column(JSON, default=list, nullable=True)

    location = relationship("Location", back_populates="theaters")


class Occasion(Base):
    __tablename__ = "occasions"

    occasion_id = Column(Integer, primary_key=True, index=True)
    occasion_name = Column(String(255), nullable=False)
    occasion_image_url = Column(String(500), nullable=True)
    no_of_names = Column(String(2), default="1", nullable=False)  # "1" or "2" nicknames on the decor


class Cake(Base):
    __tablename__ = "cakes"

    cake_id = Column(Integer, primary_key=True, index=True)
    cake_name = Column(String(255), nullable=False)
    cake_image_url = Column(String(500), nullable=True)
    egg_eggless = Column(String(10), default="egg", nullable=False)  # egg, eggless
    # Price of the 500g reference weight; other tiers scale linearly
    reference_price = Column(Numeric(10, 2), nullable=False)
    weight_tiers = Column(JSON, default=list, nullable=False)  # ["500g", "1kg", "2kg"]
    tag_lines = Column(JSON, default=list, nullable=True)


class Addon(Base):
    __tablename__ = "addons"

    addon_id = Column(Integer, primary_key=True, index=True)
    addon_name = Column(String(255), nullable=False)
    addon_price = Column(Numeric(10, 2), nullable=False)
    category_name = Column(String(100), nullable=True)
    image_url = Column(String(500), nullable=True)
    is_veg = Column(String(1), default="Y", nullable=True)


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    coupon_code_name = Column(String(100), nullable=False, index=True)
    coupon_type = Column(String(100), nullable=True)  # Display grouping, e.g. FESTIVE_OFFERS
    coupon_discount = Column(Numeric(5, 2), nullable=True)  # Percentage when > 0
    coupon_amount = Column(Numeric(10, 2), nullable=True)  # Flat amount otherwise
    coupon_description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    coupon_start_date = Column(Date, nullable=False)
    coupon_end_date = Column(Date, nullable=False)
    status = Column(String(1), default="Y", nullable=False)  # Y = active


# ============================================================================
# CUSTOMER DRAFT LINE ITEMS
# ============================================================================


class Customer(Base):
    __tablename__ = "customers"

    cust_id = Column(Integer, primary_key=True, index=True)
    booking_name = Column(String(255), nullable=False)
    number_of_persons = Column(Integer, nullable=True)
    email = Column(String(255), nullable=False)
    phone_no1 = Column(String(20), nullable=False, index=True)
    alternate_no = Column(String(20), nullable=True)
    decoration_needed = Column(String(1), default="N", nullable=False)  # Y/N
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    occasions = relationship("CustomerOccasion", cascade="all, delete-orphan")
    cakes = relationship("CustomerCake", cascade="all, delete-orphan")
    addons = relationship("CustomerAddon", cascade="all, delete-orphan")


class CustomerOccasion(Base):
    __tablename__ = "customer_occasions"

    id = Column(Integer, primary_key=True, index=True)
    cust_id = Column(Integer, ForeignKey("customers.cust_id"), nullable=False, index=True)
    booking_occasion = Column(String(255), nullable=False)
    booking_nickname = Column(String(100), nullable=False)
    partner_nickname = Column(String(100), nullable=True)
    create_date = Column(Date, default=date.today)


class CustomerCake(Base):
    __tablename__ = "customer_cakes"

    id = Column(Integer, primary_key=True, index=True)
    cust_id = Column(Integer, ForeignKey("customers.cust_id"), nullable=False, index=True)
    cake_id = Column(Integer, ForeignKey("cakes.cake_id"), nullable=True)
    cake_name = Column(String(255), nullable=False)
    weight_grams = Column(Integer, nullable=False)
    egg_eggless = Column(String(10), nullable=True)
    quantity = Column(Integer, nullable=False)
    item_price = Column(Numeric(10, 2), nullable=False)  # Scaled unit price for weight_grams
    create_date = Column(Date, default=date.today)


class CustomerAddon(Base):
    __tablename__ = "customer_addons"

    id = Column(Integer, primary_key=True, index=True)
    cust_id = Column(Integer, ForeignKey("customers.cust_id"), nullable=False, index=True)
    addon_id = Column(Integer, ForeignKey("addons.addon_id"), nullable=True)
    addon_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    addons_price = Column(Numeric(10, 2), nullable=False)
    create_date = Column(Date, default=date.today)


# ============================================================================
# RESERVATIONS AND PAYMENTS
# ============================================================================


class BookedSlot(Base):
    __tablename__ = "booked_slots"
    __table_args__ = (
        UniqueConstraint(
            "theater_id", "loc_id", "booked_date", "booked_slot", name="uq_booked_slot_natural_key"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    theater_id = Column(String(100), nullable=False)
    loc_id = Column(String(100), nullable=False)
    booked_date = Column(Date, nullable=False, index=True)
    booked_slot = Column(String(100), nullable=False)
    cust_id = Column(Integer, ForeignKey("customers.cust_id"), nullable=True, index=True)  # Holder, when known
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PaymentOrder(Base):
    __tablename__ = "payment_orders"

    order_id = Column(String(100), primary_key=True)  # Razorpay order id
    cust_id = Column(Integer, ForeignKey("customers.cust_id"), nullable=True, index=True)
    amount_minor_units = Column(Integer, nullable=False)  # paise
    currency = Column(String(10), default="INR", nullable=False)
    receipt_ref = Column(String(100), nullable=True)
    status = Column(String(20), default="created", nullable=False)  # created, paid, failed
    priced_on = Column(Date, nullable=True)  # Day the amount was quoted
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SlotBooking(Base):
    """A finalized (paid) booking"""

    __tablename__ = "slot_bookings"

    id = Column(Integer, primary_key=True, index=True)
    cust_id = Column(Integer, ForeignKey("customers.cust_id"), nullable=False, index=True)
    theater_id = Column(String(100), nullable=False)
    loc_id = Column(String(100), nullable=False)
    booking_name = Column(String(255), nullable=True)
    booking_date = Column(Date, nullable=False)
    booking_slot = Column(String(100), nullable=False)
    booked_type = Column(String(20), default="online", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PaymentDetail(Base):
    __tablename__ = "payment_details"

    id = Column(Integer, primary_key=True, index=True)
    cust_id = Column(Integer, ForeignKey("customers.cust_id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("slot_bookings.id"), nullable=True)
    theater_id = Column(String(100), nullable=False)
    loc_id = Column(String(100), nullable=False)
    booking_name = Column(String(255), nullable=True)
    order_id = Column(String(100), nullable=False)
    payment_id = Column(String(100), unique=True, nullable=False)
    payment_amount = Column(Numeric(10, 2), nullable=False)
    coupon_code = Column(String(100), nullable=True)
    coupon_discount = Column(Numeric(10, 2), default=0, nullable=False)
    payment_flag = Column(String(1), default="Y", nullable=False)
    payment_date = Column(DateTime(timezone=True), server_default=func.now())
