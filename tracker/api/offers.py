from flask import Blueprint, jsonify, request

from ..services import offers
from .forms import SendOfferForm, SignOfferForm, json_form

bp = Blueprint("offers", __name__)


@bp.route("/api/candidates/<candidate_id>/offers", methods=["POST"])
def send(candidate_id):
    form = json_form(SendOfferForm)
    offer = offers.send_offer(candidate_id, kind=form.kind.data)
    return jsonify(offer.to_dict()), 201


@bp.route("/api/offers/<offer_id>/sign", methods=["POST"])
def sign(offer_id):
    # only the offer document is written here; the candidate picks it up via its listener
    form = json_form(SignOfferForm)
    offer = offers.sign_offer(offer_id,
                              signer_ip=form.signer_ip.data or request.remote_addr,
                              download_url=form.download_url.data or None)
    return jsonify(offer.to_dict())
