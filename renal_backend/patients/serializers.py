from rest_framework import serializers

from renal_backend.core.models import User
from renal_backend.core.serializers import UserBriefSerializer
from renal_backend.patients.models import Patient


class PatientReadSerializer(serializers.ModelSerializer):
    """Read-only serializer with all fields."""

    doctor = UserBriefSerializer(read_only=True)
    visit_count = serializers.SerializerMethodField()

    class Meta:
        model = Patient
        fields = [
            'id',
            'name',
            'age',
            'gender',
            'national_id',
            'contact_info',
            'doctor',
            'visit_count',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_visit_count(self, obj):
        return obj.visits.count()


class PatientWriteSerializer(serializers.ModelSerializer):
    """Write serializer for create/update operations.

    ``doctor`` defaults to the requesting doctor; only admins may assign a
    patient to another doctor. ``test_values`` (create only) records the
    first visit together with the patient.
    """

    doctor = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.using('default').filter(role__name='doctor', is_active=True),
        required=False,
    )
    test_values = serializers.DictField(
        child=serializers.CharField(allow_blank=True),
        required=False,
        write_only=True,
    )

    class Meta:
        model = Patient
        fields = [
            'name',
            'age',
            'gender',
            'national_id',
            'contact_info',
            'doctor',
            'test_values',
        ]

    def validate_national_id(self, value):
        """Ensure national_id is unique."""
        qs = Patient.objects.using('default').filter(national_id=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('A patient with this national ID already exists.')
        return value

    def validate(self, attrs):
        request = self.context.get('request')
        role_name = getattr(getattr(getattr(request, 'user', None), 'role', None), 'name', None)
        doctor = attrs.get('doctor')

        if role_name == 'doctor':
            if doctor is not None and doctor.id != request.user.id:
                raise serializers.ValidationError({'doctor': 'Doctors can only manage their own patients.'})
            if self.instance is None:
                attrs['doctor'] = request.user
        elif self.instance is None and doctor is None:
            raise serializers.ValidationError({'doctor': 'doctor is required.'})

        if self.instance is not None and 'test_values' in attrs:
            raise serializers.ValidationError({'test_values': 'Record follow-up visits via /api/clinical/visits/.'})
        return attrs

    def create(self, validated_data):
        """Create patient using the default database."""
        validated_data.pop('test_values', None)
        return Patient.objects.using('default').create(**validated_data)

    def update(self, instance, validated_data):
        """Update patient using the default database."""
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save(using='default')
        return instance
