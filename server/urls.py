"""Root URL configuration.

The file engine is a service layer without views of its own, so only
the admin is routed here.
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
