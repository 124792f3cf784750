from django.urls import path
from .views import register, login, user_me, CustomTokenRefreshView

urlpatterns = [
    path('register', register, name='register'),
    path('login', login, name='login'),
    path('token/refresh', CustomTokenRefreshView.as_view(), name='token-refresh'),
    path('me', user_me, name='user-me'),
]
