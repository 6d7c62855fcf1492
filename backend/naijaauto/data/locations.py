from __future__ import annotations

from naijaauto.store.records import Location


LAUNCH_LOCATIONS = (
    Location(state="Lagos", city="Lagos Island", lat=6.4541, lng=3.3947),
    Location(state="Lagos", city="Ikeja", lat=6.6018, lng=3.3515),
    Location(state="Lagos", city="Lekki", lat=6.4698, lng=3.5852),
    Location(state="FCT", city="Abuja", lat=9.0765, lng=7.3986),
    Location(state="Rivers", city="Port Harcourt", lat=4.8156, lng=7.0498),
    Location(state="Kano", city="Kano", lat=12.0022, lng=8.592),
    Location(state="Oyo", city="Ibadan", lat=7.3775, lng=3.947),
    Location(state="Kaduna", city="Kaduna", lat=10.5105, lng=7.4165),
    Location(state="Enugu", city="Enugu", lat=6.4584, lng=7.5464),
    Location(state="Delta", city="Warri", lat=5.5549, lng=5.7932),
    Location(state="Ogun", city="Abeokuta", lat=7.1475, lng=3.3619),
    Location(state="Anambra", city="Awka", lat=6.212, lng=7.0715),
    Location(state="Edo", city="Benin City", lat=6.3382, lng=5.6257),
    Location(state="Plateau", city="Jos", lat=9.8965, lng=8.8583),
    Location(state="Akwa Ibom", city="Uyo", lat=5.0377, lng=7.9128),
)
