"""URL configuration."""
from django.contrib import admin
from django.contrib.auth import views as auth_views
from django.urls import include, path


urlpatterns = [
    path("auth/login/", auth_views.LoginView.as_view(), name="login"),
    path("auth/logout/", auth_views.LogoutView.as_view(), name="logout"),
    path("api/", include("dashboard.urls")),
    path("api/", include("dashboard.admin_urls")),
    path("django-admin/", admin.site.urls),
]
