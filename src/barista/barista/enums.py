from enum import StrEnum


class _CaseInsensitiveEnum(StrEnum):
    """StrEnum that also accepts values in any letter case ("oat" -> Oat)."""

    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        return None


class Size(_CaseInsensitiveEnum):
    SHORT = "Short"
    TALL = "Tall"
    GRANDE = "Grande"
    VENTI = "Venti"
    TRENTA = "Trenta"


class Milk(_CaseInsensitiveEnum):
    WHOLE = "Whole"
    TWO_PERCENT = "2%"
    NONFAT = "Nonfat"
    OAT = "Oat"
    ALMOND = "Almond"
    SOY = "Soy"
    COCONUT = "Coconut"


class Syrup(_CaseInsensitiveEnum):
    VANILLA = "Vanilla"
    CARAMEL = "Caramel"
    HAZELNUT = "Hazelnut"
    PEPPERMINT = "Peppermint"
    TOFFEE_NUT = "Toffee Nut"
    SUGAR_FREE_VANILLA = "Sugar-Free Vanilla"


class Sweetener(_CaseInsensitiveEnum):
    SUGAR = "Sugar"
    HONEY = "Honey"
    STEVIA = "Stevia"
    SPLENDA = "Splenda"
    CLASSIC = "Classic"


class Topping(_CaseInsensitiveEnum):
    WHIPPED_CREAM = "Whipped Cream"
    CARAMEL_DRIZZLE = "Caramel Drizzle"
    MOCHA_DRIZZLE = "Mocha Drizzle"
    CINNAMON_POWDER = "Cinnamon Powder"
    COLD_FOAM = "Cold Foam"
    CHOCOLATE_CURLS = "Chocolate Curls"


class OrderStatus(StrEnum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    COMMITTED = "committed"


class Progress(StrEnum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"
