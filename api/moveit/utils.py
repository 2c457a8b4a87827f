import uuid
from itsdangerous import URLSafeSerializer
from .config import SECRET_KEY

def new_id() -> str:
    return str(uuid.uuid4())

def make_token(payload: dict, salt: str = "access") -> str:
    s = URLSafeSerializer(SECRET_KEY, salt=salt)
    return s.dumps(payload)

def read_token(token: str, salt: str = "access") -> dict:
    s = URLSafeSerializer(SECRET_KEY, salt=salt)
    return s.loads(token)
