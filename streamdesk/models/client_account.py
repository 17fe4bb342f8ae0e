from sqlalchemy import Column, Date, Integer, Text

from streamdesk.database import Base


class ClientAccount(Base):
    """One streaming profile sold to a customer (a customer number can own several)."""

    __tablename__ = "CLIENTES"

    id = Column("ID", Integer, primary_key=True, autoincrement=True)
    number = Column("NUMERO", Text)
    name = Column("NOMBRE", Text)
    platform = Column("PLATAFORMA", Text)
    email = Column("CORREO", Text)
    password = Column("CONTRASEÑA", Text)
    profile = Column("PERFIL", Text)
    pin = Column("PIN", Text)
    days_left = Column("DIAS_RESTANTES", Integer)
    ends_on = Column("DIA_DE_FINALIZACION", Date)
