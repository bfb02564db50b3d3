from .routers import AuthAPI, ContactAPI, ChatAPI, MessageAPI
