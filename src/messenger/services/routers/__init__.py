from .auth_api import AuthAPI
from .contact_api import ContactAPI
from .chat_api import ChatAPI
from .message_api import MessageAPI
