from models.base_model import Base, BaseModel
from sqlalchemy import Column, String


class User(BaseModel, Base):
    __tablename__ = "users"
    name = Column(String(64), nullable=False)
    # Normalised to lower case by the request schemas before it gets here
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"
