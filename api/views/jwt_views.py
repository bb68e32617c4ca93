"""
JWT views with throttling.
"""

from rest_framework_simplejwt.views import TokenObtainPairView as BaseTokenObtainPairView
from api.throttles import LoginThrottle


class TokenObtainPairView(BaseTokenObtainPairView):
    """JWT token obtain view with rate limiting"""
    throttle_classes = [LoginThrottle]
