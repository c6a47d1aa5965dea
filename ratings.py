import logging
from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from sqlalchemy import func
from models import db, Material, MaterialRating, MaterialGrade, LectureNote, LectureNoteRating, iso, utcnow
from utils import parse_int

logger = logging.getLogger(__name__)

ratings_bp = Blueprint('ratings', __name__, url_prefix='/api')

class ScoreKind:
    """One kind of per-user score attached to a target (rating of a material, grade, ...)"""

    def __init__(self, model, target_model, target_field, value_field, low, high, label, target_label,
                 has_comment=True):
        self.model = model
        self.target_model = target_model
        self.target_field = target_field
        self.value_field = value_field
        self.low = low
        self.high = high
        self.label = label
        self.target_label = target_label
        self.has_comment = has_comment

    def target_column(self):
        return getattr(self.model, self.target_field)

    def value_column(self):
        return getattr(self.model, self.value_field)

    def entries(self, target_id):
        return self.model.query.filter(self.target_column() == target_id) \
            .order_by(self.model.created_at.desc(), self.model.id.desc()).all()

    def find(self, target_id, user_id):
        return self.model.query.filter(
            self.target_column() == target_id,
            self.model.user_id == user_id
        ).first()

    def serialize(self, entry):
        data = {
            'id': entry.id,
            self.target_key(): getattr(entry, self.target_field),
            self.value_field: getattr(entry, self.value_field),
            'createdAt': iso(entry.created_at),
            'userId': entry.user.id,
            'userName': entry.user.name,
            'userRole': entry.user.role
        }
        if self.has_comment:
            data['comment'] = entry.comment
        return data

    def target_key(self):
        # material_id -> materialId
        head, tail = self.target_field.split('_', 1)
        return head + tail.capitalize()

    def summary(self, target_id):
        average, count = db.session.query(
            func.avg(self.value_column()),
            func.count(self.model.id)
        ).filter(self.target_column() == target_id).one()

        return {
            self.value_field + 's': [self.serialize(entry) for entry in self.entries(target_id)],
            'average': round(float(average), 2) if average is not None else 0,
            'count': count
        }

MATERIAL_RATINGS = ScoreKind(MaterialRating, Material, 'material_id', 'rating', 1, 5, 'Rating', 'Material')
NOTE_RATINGS = ScoreKind(LectureNoteRating, LectureNote, 'note_id', 'rating', 1, 5, 'Rating', 'Lecture note')
MATERIAL_GRADES = ScoreKind(MaterialGrade, Material, 'material_id', 'grade', 0, 100, 'Grade', 'Material',
                            has_comment=False)

def list_scores(kind, target_id):
    return jsonify({'success': True, 'data': kind.summary(target_id)})

def save_score(kind, target_id):
    data = request.get_json(silent=True) or {}
    value = parse_int(data.get(kind.value_field))

    if value is None or value < kind.low or value > kind.high:
        return jsonify({
            'success': False,
            'error': f'{kind.label} must be between {kind.low} and {kind.high}'
        }), 400

    if not db.session.get(kind.target_model, target_id):
        return jsonify({'success': False, 'error': f'{kind.target_label} not found'}), 404

    entry = kind.find(target_id, current_user.id)
    existed = entry is not None

    if entry is None:
        entry = kind.model(user_id=current_user.id)
        setattr(entry, kind.target_field, target_id)
        db.session.add(entry)

    setattr(entry, kind.value_field, value)
    entry.created_at = utcnow()
    if kind.has_comment:
        entry.comment = data.get('comment') or ''

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error saving {kind.label.lower()}: {e}")
        return jsonify({'success': False, 'error': f'Failed to save {kind.label.lower()}'}), 500

    verb = 'updated' if existed else 'added'
    return jsonify({
        'success': True,
        'message': f'{kind.label} {verb} successfully',
        'data': kind.summary(target_id)
    })

def delete_score(kind, target_id):
    entry = kind.find(target_id, current_user.id)
    if not entry:
        return jsonify({'success': False, 'error': f'{kind.label} not found'}), 404

    db.session.delete(entry)
    db.session.commit()

    return jsonify({'success': True, 'message': f'{kind.label} deleted successfully'})

# MATERIAL RATINGS

@ratings_bp.route('/materials/<int:material_id>/ratings')
@login_required
def material_ratings(material_id):
    return list_scores(MATERIAL_RATINGS, material_id)

@ratings_bp.route('/materials/<int:material_id>/ratings', methods=['POST'])
@login_required
def rate_material(material_id):
    return save_score(MATERIAL_RATINGS, material_id)

@ratings_bp.route('/materials/<int:material_id>/ratings', methods=['DELETE'])
@login_required
def delete_material_rating(material_id):
    return delete_score(MATERIAL_RATINGS, material_id)

# MATERIAL GRADES

@ratings_bp.route('/materials/<int:material_id>/grades')
@login_required
def material_grades(material_id):
    return list_scores(MATERIAL_GRADES, material_id)

@ratings_bp.route('/materials/<int:material_id>/grades', methods=['POST'])
@login_required
def grade_material(material_id):
    return save_score(MATERIAL_GRADES, material_id)

@ratings_bp.route('/materials/<int:material_id>/grades', methods=['DELETE'])
@login_required
def delete_material_grade(material_id):
    return delete_score(MATERIAL_GRADES, material_id)

# LECTURE NOTE RATINGS

@ratings_bp.route('/notes/<int:note_id>/ratings')
@login_required
def note_ratings(note_id):
    return list_scores(NOTE_RATINGS, note_id)

@ratings_bp.route('/notes/<int:note_id>/ratings', methods=['POST'])
@login_required
def rate_note(note_id):
    return save_score(NOTE_RATINGS, note_id)

@ratings_bp.route('/notes/<int:note_id>/ratings', methods=['DELETE'])
@login_required
def delete_note_rating(note_id):
    return delete_score(NOTE_RATINGS, note_id)
