from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from .models import Profile
from .serializers import UserSerializer, ProfileSerializer


class CurrentUserView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        try:
            profile = Profile.objects.select_related('school').get(user=user)
        except Profile.DoesNotExist:
            return Response({
                "user": UserSerializer(user, context={'request': request}).data,
                "detail": "Profile does not exist"
            }, status=status.HTTP_404_NOT_FOUND)
        return Response({
            "user": UserSerializer(user, context={'request': request}).data,
            "profile": ProfileSerializer(profile, context={'request': request}).data
        })
