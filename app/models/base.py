from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Модели объявлены через Column с обычными аннотациями, без Mapped[]
    __allow_unmapped__ = True
